from setuptools import setup, find_packages

setup(
    name="argo-mcp-tools",
    version="0.1.0",
    description="MCP tools for Argo Workflows with workflow graph rendering",
    author="MCP Team",
    packages=find_packages(),
    install_requires=[
        "pydantic>=2.0.0",
        "httpx>=0.24.0",
        "PyYAML>=6.0",
        "graphviz>=0.20",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.0.0",
        ],
    },
    python_requires=">=3.8",
)
