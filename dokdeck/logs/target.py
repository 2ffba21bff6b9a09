"""
Resolution of the container whose logs a service view streams.
"""

from dataclasses import dataclass
from typing import Optional

from dokdeck.api.client import HttpClient
from dokdeck.api.decode import Ok
from dokdeck.api.errors import RequestError
from dokdeck.api.resources import fetch_containers_by_app_name, fetch_service

APP_NAME_UNAVAILABLE_MESSAGE = "Application name is unavailable."
CONTAINER_DETAILS_FAILED_MESSAGE = "Failed to load container details."


@dataclass(frozen=True)
class LogTarget:
    """
    Outcome of resolving a service to a container.
    
    ``container_id`` is None while no container is running; ``error`` is set
    when the lookup itself failed.
    """
    app_name: Optional[str] = None
    container_id: Optional[str] = None
    error: Optional[str] = None


async def resolve_log_target(client: HttpClient, service_type: str, service_id: str) -> LogTarget:
    """
    Find the container backing a service.
    
    Args:
        client: API client
        service_type: "application", "postgres", "compose", ...
        service_id: Identifier of the service within its type
        
    Returns:
        LogTarget with the first usable container id, if any
    """
    service = await fetch_service(client, service_type, service_id)
    if isinstance(service, RequestError):
        return LogTarget(error=service.message)
    
    app_name = service.value.resolved_app_name if isinstance(service, Ok) else None
    if not app_name:
        return LogTarget(error=APP_NAME_UNAVAILABLE_MESSAGE)
    
    containers = await fetch_containers_by_app_name(client, app_name)
    if not isinstance(containers, Ok):
        return LogTarget(app_name=app_name, error=CONTAINER_DETAILS_FAILED_MESSAGE)
    
    for container in containers.value:
        if container.resolved_id:
            return LogTarget(app_name=app_name, container_id=container.resolved_id)
    return LogTarget(app_name=app_name)
