"""
Typed calls for the resources the client reads.

Each function returns Ok with a decoded model, Malformed when the server
answered with an unexpected shape, or the RequestError of a failed call.
"""

from typing import Any, Dict, List, Optional, Union

from dokdeck.api.client import HttpClient
from dokdeck.api.decode import Malformed, Ok, decode
from dokdeck.api.errors import RequestError
from dokdeck.models.project import ContainerInfo, Project, ProjectDetail, ServiceDetail
from dokdeck.models.session import Profile

ResourceResult = Union[Ok[Any], Malformed, RequestError]

# Detail procedure and id parameter per service type.
SERVICE_ENDPOINTS: Dict[str, tuple] = {
    "application": ("application.one", "applicationId"),
    "postgres": ("postgres.one", "postgresId"),
    "mysql": ("mysql.one", "mysqlId"),
    "mariadb": ("mariadb.one", "mariadbId"),
    "mongo": ("mongo.one", "mongoId"),
    "redis": ("redis.one", "redisId"),
    "compose": ("compose.one", "composeId"),
}


def _list_or_field(*names: str):
    """Accept a bare list or an object carrying the list under one of ``names``."""
    def unwrap(payload: Any) -> Optional[list]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for name in names:
                value = payload.get(name)
                if isinstance(value, list):
                    return value
        return None
    return unwrap


async def fetch_projects(
    client: HttpClient,
    *,
    endpoint: Optional[str] = None,
    token: Optional[str] = None,
    probe: bool = False,
) -> ResourceResult:
    """List projects; also used as the credential validation probe."""
    result = await client.get(
        client.settings.probe_path,
        endpoint=endpoint,
        token=token,
        probe=probe,
    )
    if isinstance(result, RequestError):
        return result
    return decode(List[Project], result.value, unwrap=_list_or_field("projects"))


async def fetch_project(client: HttpClient, project_id: str) -> ResourceResult:
    """Fetch one project with its environments and their services."""
    result = await client.get("project.one", params={"projectId": project_id})
    if isinstance(result, RequestError):
        return result
    return decode(ProjectDetail, result.value)


async def fetch_profile(client: HttpClient) -> ResourceResult:
    result = await client.get(client.settings.profile_path)
    if isinstance(result, RequestError):
        return result
    return decode(Profile, result.value)


async def fetch_service(client: HttpClient, service_type: str, service_id: str) -> ResourceResult:
    """
    Fetch the detail record of a service.
    
    Raises:
        ValueError: If the service type is not supported
    """
    try:
        procedure, id_param = SERVICE_ENDPOINTS[service_type]
    except KeyError:
        raise ValueError(f"Unsupported service type: {service_type}")
    
    result = await client.get(procedure, params={id_param: service_id})
    if isinstance(result, RequestError):
        return result
    return decode(ServiceDetail, result.value)


async def fetch_containers_by_app_name(client: HttpClient, app_name: str) -> ResourceResult:
    result = await client.get(
        "docker.getContainersByAppNameMatch",
        params={"appName": app_name},
    )
    if isinstance(result, RequestError):
        return result
    return decode(
        List[ContainerInfo],
        result.value,
        unwrap=_list_or_field("containers", "data"),
    )
