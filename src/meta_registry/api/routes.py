"""API endpoints for deployment and service registration."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel

from ..errors import DeploymentNotFound, ServiceNotFound, explain
from ..models.deployment import Deployment, ServiceRevision
from ..schema.loader import parse_deployment
from ..storage.service_registry import RegistrationResult, ServiceRegistry
from .dependencies import get_service_registry

router = APIRouter(prefix="/api/v1", tags=["registry"])


class MethodSummary(BaseModel):
    """Method row of a service description."""
    name: str
    input_type: str
    output_type: str
    key_field: Optional[str] = None


class ServiceSummary(BaseModel):
    """Response model for a service's latest revision."""
    name: str
    kind: str
    revision: int
    public: bool
    deployment_id: str
    methods: List[MethodSummary]


class ErrorCodeResponse(BaseModel):
    """Response model for error code documentation."""
    code: str
    title: str
    description: str
    link: str


def _summarize(revision: ServiceRevision) -> ServiceSummary:
    methods = []
    for method in revision.methods:
        key = revision.key_definition.get(method.name)
        methods.append(MethodSummary(
            name=method.name,
            input_type=method.input_type,
            output_type=method.output_type,
            key_field=key.name if key else None,
        ))

    return ServiceSummary(
        name=revision.service_name,
        kind=revision.kind.value,
        revision=revision.revision,
        public=revision.public,
        deployment_id=revision.deployment_id,
        methods=methods,
    )


@router.post("/deployments", response_model=RegistrationResult, status_code=201)
async def register_deployment(
    document: Dict[str, Any] = Body(...),
    dry_run: bool = Query(False),
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """Register a deployment described by a contract document."""
    deployment = parse_deployment(document)
    return service_registry.register_deployment(deployment, dry_run=dry_run)


@router.get("/deployments", response_model=List[Deployment])
async def list_deployments(
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """List all registered deployments."""
    return service_registry.list_deployments()


@router.get("/deployments/{deployment_id}", response_model=Deployment)
async def get_deployment(
    deployment_id: str,
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """Get a deployment by ID."""
    try:
        return service_registry.get_deployment(deployment_id)
    except DeploymentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/deployments/{deployment_id}", status_code=204)
async def remove_deployment(
    deployment_id: str,
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """Remove a deployment that no longer provides a latest revision."""
    try:
        service_registry.remove_deployment(deployment_id)
    except DeploymentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/services", response_model=List[ServiceSummary])
async def list_services(
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """List the latest revision of every service."""
    return [_summarize(r) for r in service_registry.list_services()]


@router.get("/services/{name}", response_model=ServiceSummary)
async def get_service(
    name: str,
    revision: Optional[int] = Query(None),
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """Describe the latest (or a specific) revision of a service."""
    try:
        return _summarize(service_registry.get_service(name, revision))
    except ServiceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/services/{name}/revisions", response_model=List[ServiceRevision])
async def list_revisions(
    name: str,
    service_registry: ServiceRegistry = Depends(get_service_registry),
):
    """List every revision of a service."""
    try:
        return service_registry.list_revisions(name)
    except ServiceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/errors/{code}", response_model=ErrorCodeResponse)
async def explain_error(code: str):
    """Documentation for an error code."""
    try:
        return explain(code)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown error code: {code}")
