"""Workspace scanning for go-unexport."""

from scan.buildtags import BuildContext, should_build
from scan.files import find_go_package_dirs
from scan.workspace import Workspace, WorkspaceError, scan_workspace

__all__ = [
    "BuildContext",
    "Workspace",
    "WorkspaceError",
    "find_go_package_dirs",
    "scan_workspace",
    "should_build",
]
