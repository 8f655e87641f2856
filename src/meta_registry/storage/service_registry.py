"""Service Registry management."""

import sqlite3
import threading
from contextlib import ExitStack
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from ..errors import (
    DeploymentError,
    DeploymentNotFound,
    MetaError,
    ServiceNotFound,
)
from ..logging import DeploymentContext, get_logger
from ..models.deployment import Deployment, ServiceRevision
from ..validation.contract import ContractDiffEngine
from ..validation.key_field import KeyFieldValidator
from ..validation.revision import RevisionCompatibilityValidator
from .sqlite import SQLiteStorage

logger = get_logger(__name__)


class RegistrationResult(BaseModel):
    """Outcome of an accepted deployment registration."""

    deployment_id: str
    revisions: List[ServiceRevision]
    dry_run: bool = False


class ServiceRegistry:
    """Manages the Service Registry.

    Registration of a deployment is all-or-nothing: either every service in
    the deployment passes validation and gets a new revision, or nothing is
    stored.
    """

    def __init__(
        self,
        db: SQLiteStorage,
        key_validator: Optional[KeyFieldValidator] = None,
        revision_validator: Optional[RevisionCompatibilityValidator] = None,
        allow_field_rename: bool = False,
    ):
        self.db = db
        self.key_validator = key_validator or KeyFieldValidator()
        self.revision_validator = revision_validator or RevisionCompatibilityValidator(
            ContractDiffEngine(allow_field_rename=allow_field_rename)
        )
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, service_name: str) -> threading.Lock:
        with self._locks_guard:
            if service_name not in self._locks:
                self._locks[service_name] = threading.Lock()
            return self._locks[service_name]

    def _lock_services(self, stack: ExitStack, service_names: Iterable[str]) -> None:
        """Acquire the per-service locks in a stable order."""
        for name in sorted(set(service_names)):
            stack.enter_context(self._lock_for(name))

    def register_deployment(self, deployment: Deployment, dry_run: bool = False) -> RegistrationResult:
        """Validate a deployment and register a new revision for each of its services.

        Args:
            deployment: Deployment to register
            dry_run: Validate only, do not persist anything

        Returns:
            RegistrationResult with the accepted revisions

        Raises:
            BadKeyDefinition: If a keyed service has an invalid key field
            RevisionConflict: If a service conflicts with a prior revision
            DeploymentError: If the deployment is empty or already registered
        """
        with DeploymentContext(deployment.id), ExitStack() as stack:
            logger.info(
                "deployment_registration_started",
                services=deployment.service_names,
                endpoint=deployment.endpoint,
                dry_run=dry_run,
            )

            if not deployment.services:
                raise DeploymentError(f"Deployment '{deployment.id}' declares no services")
            if self.db.get_deployment(deployment.id) is not None:
                raise DeploymentError(f"Deployment '{deployment.id}' already exists")

            self._lock_services(stack, deployment.service_names)

            try:
                revisions = self._build_revisions(deployment)
            except MetaError as e:
                logger.warning("deployment_rejected", code=e.code, error=e.message)
                raise

            if not dry_run:
                try:
                    self.db.save_deployment(deployment, revisions)
                except sqlite3.IntegrityError as e:
                    raise DeploymentError(
                        f"Deployment '{deployment.id}' could not be stored: {e}"
                    ) from e

                logger.info(
                    "deployment_registered",
                    revisions={r.service_name: r.revision for r in revisions},
                )

            return RegistrationResult(
                deployment_id=deployment.id,
                revisions=revisions,
                dry_run=dry_run,
            )

    def _build_revisions(self, deployment: Deployment) -> List[ServiceRevision]:
        self.key_validator.validate_all(deployment.services)

        revisions = []
        for service in deployment.services:
            previous = self.db.list_revisions(service.name)
            next_revision = previous[-1].revision + 1 if previous else 1
            candidate = ServiceRevision.from_definition(service, next_revision, deployment.id)

            self.revision_validator.validate(candidate, previous, deployment.id)

            logger.info(
                "service_revision_accepted",
                service=service.name,
                revision=candidate.revision,
                kind=candidate.kind.value,
            )
            revisions.append(candidate)

        return revisions

    def get_service(self, name: str, revision: Optional[int] = None) -> ServiceRevision:
        """Get the latest (or a specific) revision of a service.

        Args:
            name: Service name
            revision: Optional revision number

        Returns:
            ServiceRevision

        Raises:
            ServiceNotFound: If the service or revision does not exist
        """
        if revision is None:
            found = self.db.get_latest_revision(name)
        else:
            found = self.db.get_revision(name, revision)

        if found is None:
            raise ServiceNotFound(name, revision)
        return found

    def list_services(self) -> List[ServiceRevision]:
        """List the latest revision of every registered service."""
        return [self.db.get_latest_revision(name) for name in self.db.list_service_names()]

    def list_revisions(self, name: str) -> List[ServiceRevision]:
        """List all revisions of a service.

        Raises:
            ServiceNotFound: If the service has no revision
        """
        revisions = self.db.list_revisions(name)
        if not revisions:
            raise ServiceNotFound(name)
        return revisions

    def get_deployment(self, deployment_id: str) -> Deployment:
        """Get a deployment by ID.

        Raises:
            DeploymentNotFound: If the deployment does not exist
        """
        deployment = self.db.get_deployment(deployment_id)
        if deployment is None:
            raise DeploymentNotFound(deployment_id)
        return deployment

    def list_deployments(self) -> List[Deployment]:
        """List all registered deployments."""
        return self.db.list_deployments()

    def remove_deployment(self, deployment_id: str) -> None:
        """Remove a deployment and the revisions it owns.

        A deployment that still provides the latest revision of a service
        cannot be removed.

        Raises:
            DeploymentNotFound: If the deployment does not exist
            DeploymentError: If the deployment owns a latest revision
        """
        self.get_deployment(deployment_id)
        owned = self.db.list_revisions_by_deployment(deployment_id)

        with ExitStack() as stack:
            self._lock_services(stack, (r.service_name for r in owned))

            for revision in owned:
                latest = self.db.get_latest_revision(revision.service_name)
                if latest is not None and latest.revision == revision.revision:
                    raise DeploymentError(
                        f"Deployment '{deployment_id}' provides the latest revision "
                        f"({revision.revision}) of service '{revision.service_name}'"
                    )

            self.db.delete_deployment(deployment_id)

        logger.info("deployment_removed", deployment_id=deployment_id)
