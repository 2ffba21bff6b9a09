"""
Backend resource records.

Only the fields the client reads are declared; everything else the server
sends is preserved as extras.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Project(BaseModel):
    """A Dokploy project as returned by ``project.all``."""
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    id: Optional[str] = None
    project_id: Optional[str] = Field(default=None, alias="projectId")
    name: Optional[str] = None
    description: Optional[str] = None
    
    @property
    def key(self) -> Optional[str]:
        return self.project_id or self.id


class ProjectEnvironment(BaseModel):
    """An environment of a project with its service lists."""
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    environment_id: Optional[str] = Field(default=None, alias="environmentId")
    name: Optional[str] = None
    applications: Optional[List[Dict[str, Any]]] = None
    compose: Optional[List[Dict[str, Any]]] = None
    mariadb: Optional[List[Dict[str, Any]]] = None
    mongo: Optional[List[Dict[str, Any]]] = None
    mysql: Optional[List[Dict[str, Any]]] = None
    postgres: Optional[List[Dict[str, Any]]] = None
    redis: Optional[List[Dict[str, Any]]] = None


class ProjectDetail(Project):
    """A project as returned by ``project.one``."""
    
    environments: Optional[List[ProjectEnvironment]] = None


class Deployment(BaseModel):
    """A deployment entry attached to a service."""
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    deployment_id: Optional[str] = Field(default=None, alias="deploymentId")
    title: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class ServiceDetail(BaseModel):
    """Detail record for an application, database or compose service."""
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    app_name: Optional[str] = Field(default=None, alias="appName")
    name: Optional[str] = None
    deployments: Optional[List[Deployment]] = None
    
    @property
    def resolved_app_name(self) -> Optional[str]:
        """The Docker app name, falling back to the display name."""
        for candidate in (self.app_name, self.name):
            if candidate and candidate.strip():
                return candidate.strip()
        return None


class ContainerInfo(BaseModel):
    """A running container matched to a service."""
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    container_id: Optional[str] = Field(default=None, alias="containerId")
    id: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    
    @property
    def resolved_id(self) -> Optional[str]:
        for candidate in (self.container_id, self.id):
            if candidate and candidate.strip():
                return candidate
        return None
