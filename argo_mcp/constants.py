from enum import Enum


class Ecosystem(Enum):
    ARGO = "argo"
    GENERAL = "general"

    def __str__(self) -> str:
        return self.value


class OSType(Enum):
    WINDOWS = "windows"
    NON_WINDOWS = "non-windows"
    ALL = "all"

    def __str__(self) -> str:
        return self.value


# Values accepted by the MCP_*_MODE filter settings
FILTER_MODES = ("all", "whitelist", "blacklist")
