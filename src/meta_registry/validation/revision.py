"""Compatibility checks between a candidate revision and prior revisions."""

from typing import Iterable, List, Optional

from ..errors import RevisionConflict
from ..models.deployment import ServiceRevision
from .contract import ContractDiffEngine


class RevisionCompatibilityValidator:
    """Validates a candidate service revision against previously accepted ones."""

    def __init__(self, diff_engine: Optional[ContractDiffEngine] = None):
        self.diff_engine = diff_engine or ContractDiffEngine()

    def validate(
        self,
        candidate: ServiceRevision,
        previous: Iterable[ServiceRevision],
        deployment_id: Optional[str] = None,
    ) -> None:
        """Check kind, key definition and contract against every prior revision.

        Args:
            candidate: Revision proposed by the deployment being registered
            previous: Accepted revisions of the same service
            deployment_id: Deployment to name in errors, defaults to the candidate's

        Raises:
            RevisionConflict: On the first kind mismatch, key mismatch,
                missing method or incompatible method contract.
        """
        deployment_id = deployment_id or candidate.deployment_id
        prior = sorted(
            (r for r in previous if r.service_name == candidate.service_name),
            key=lambda r: r.revision,
        )

        for revision in prior:
            self._check_kind(candidate, revision, deployment_id)
        for revision in prior:
            self._check_key_definition(candidate, revision, deployment_id)
        for revision in prior:
            self._check_methods(candidate, revision, deployment_id)
        for revision in prior:
            self._check_contract(candidate, revision, deployment_id)

    def _check_kind(self, candidate: ServiceRevision, prior: ServiceRevision, deployment_id: str) -> None:
        if candidate.kind != prior.kind:
            raise RevisionConflict(
                deployment_id, candidate.service_name, prior.revision, "kind",
                f"service kind changed from '{prior.kind.value}' to '{candidate.kind.value}'",
            )

    def _check_key_definition(
        self, candidate: ServiceRevision, prior: ServiceRevision, deployment_id: str
    ) -> None:
        for method_name, prior_key in prior.key_definition.items():
            if candidate.get_method(method_name) is None:
                # Reported as a missing method
                continue

            candidate_key = candidate.key_definition.get(method_name)
            if candidate_key is None:
                raise RevisionConflict(
                    deployment_id, candidate.service_name, prior.revision, "key",
                    f"method '{method_name}' no longer defines key field '{prior_key.name}'",
                )
            if (candidate_key.name, candidate_key.type) != (prior_key.name, prior_key.type):
                raise RevisionConflict(
                    deployment_id, candidate.service_name, prior.revision, "key",
                    f"key field of method '{method_name}' changed from "
                    f"'{prior_key.name}: {prior_key.type}' to "
                    f"'{candidate_key.name}: {candidate_key.type}'",
                )

        for method_name, candidate_key in candidate.key_definition.items():
            if prior.get_method(method_name) is not None and method_name not in prior.key_definition:
                raise RevisionConflict(
                    deployment_id, candidate.service_name, prior.revision, "key",
                    f"method '{method_name}' introduces key field '{candidate_key.name}'",
                )

    def _check_methods(self, candidate: ServiceRevision, prior: ServiceRevision, deployment_id: str) -> None:
        missing = [name for name in prior.method_names if candidate.get_method(name) is None]
        if missing:
            raise RevisionConflict(
                deployment_id, candidate.service_name, prior.revision, "method",
                f"missing methods implemented by previous revisions: {', '.join(missing)}",
            )

    def _check_contract(self, candidate: ServiceRevision, prior: ServiceRevision, deployment_id: str) -> None:
        violations: List[str] = []
        for old_method in prior.methods:
            new_method = candidate.get_method(old_method.name)
            diff = self.diff_engine.diff(old_method, new_method)
            violations.extend(f"{old_method.name}: {v}" for v in diff.violations)

        if violations:
            raise RevisionConflict(
                deployment_id, candidate.service_name, prior.revision, "contract",
                "contract is not backward compatible; " + "; ".join(violations),
            )
