"""
Pydantic models for the client core.
"""

from dokdeck.models.session import Credential, Profile, Session, SessionStatus
from dokdeck.models.project import (
    ContainerInfo,
    Deployment,
    Project,
    ProjectDetail,
    ProjectEnvironment,
    ServiceDetail,
)
from dokdeck.models.logs import LogParamsDraft, LogStreamParams, StreamStatus, parse_tail

__all__ = [
    "Credential",
    "Profile",
    "Session",
    "SessionStatus",
    "ContainerInfo",
    "Deployment",
    "Project",
    "ProjectDetail",
    "ProjectEnvironment",
    "ServiceDetail",
    "LogParamsDraft",
    "LogStreamParams",
    "StreamStatus",
    "parse_tail",
]
