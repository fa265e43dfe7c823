"""Shared manifests for workflow graph tests."""

import pytest

from utils.workflow_graph.models import WorkflowSpec, WorkflowStatus


MAIN_DAG_MANIFEST = """
apiVersion: argoproj.io/v1alpha1
kind: Workflow
metadata:
  generateName: ci-pipeline-
spec:
  entrypoint: main
  templates:
  - name: main
    dag:
      tasks:
      - name: build
        template: build
      - name: test
        template: test
        dependencies: [build]
      - name: deploy
        template: deploy
        dependencies: [test]
  - name: build
    container:
      image: golang:1.22
  - name: test
    container:
      image: golang:1.22
  - name: deploy
    script:
      image: alpine
      source: echo deploy
"""


@pytest.fixture
def main_dag_manifest():
    return MAIN_DAG_MANIFEST


@pytest.fixture
def diamond_spec():
    """a -> (b, c) -> d"""
    return WorkflowSpec.model_validate(
        {
            "entrypoint": "main",
            "templates": [
                {
                    "name": "main",
                    "dag": {
                        "tasks": [
                            {"name": "a", "template": "work"},
                            {"name": "b", "template": "work", "dependencies": ["a"]},
                            {"name": "c", "template": "work", "dependencies": ["a"]},
                            {"name": "d", "template": "work", "dependencies": ["b", "c"]},
                        ]
                    },
                },
                {"name": "work", "container": {"image": "alpine"}},
            ],
        }
    )


@pytest.fixture
def steps_spec():
    return WorkflowSpec.model_validate(
        {
            "entrypoint": "main",
            "templates": [
                {
                    "name": "main",
                    "steps": [
                        [{"name": "hello", "template": "say"}],
                        [
                            {"name": "left", "template": "say"},
                            {"name": "right", "template": "approve", "when": "{{workflow.parameters.ok}} == true"},
                        ],
                    ],
                },
                {"name": "say", "script": {"image": "python:3.12", "source": "print(1)"}},
                {"name": "approve", "suspend": {}},
            ],
        }
    )


@pytest.fixture
def live_status():
    """A finished workflow whose pods sit behind a Retry node."""
    return WorkflowStatus.model_validate(
        {
            "phase": "Failed",
            "nodes": {
                "wf": {
                    "id": "wf",
                    "name": "wf",
                    "displayName": "wf",
                    "type": "DAG",
                    "phase": "Failed",
                    "children": ["wf-retry"],
                },
                "wf-retry": {
                    "id": "wf-retry",
                    "name": "wf.build",
                    "displayName": "build",
                    "type": "Retry",
                    "phase": "Succeeded",
                    "children": ["wf-build"],
                },
                "wf-build": {
                    "id": "wf-build",
                    "name": "wf.build(0)",
                    "displayName": "build",
                    "templateName": "build",
                    "type": "Pod",
                    "phase": "Succeeded",
                    "children": ["wf-test"],
                },
                "wf-test": {
                    "id": "wf-test",
                    "name": "wf.test",
                    "displayName": "test",
                    "templateName": "run-tests",
                    "type": "Pod",
                    "phase": "Failed",
                },
            },
        }
    )
