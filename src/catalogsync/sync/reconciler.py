"""Pure reconciliation rules (no I/O)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Container, Mapping, Optional

from catalogsync.models import Entity
from catalogsync.util.ids import DEFAULT_TEMP_PREFIX


@dataclass(slots=True)
class MergePlan:
    """Writes a pull-and-merge pass should perform."""

    upserts: list[Entity] = field(default_factory=list)
    deletions: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)


class Reconciler:
    """
    Decision logic shared by the orchestrator and the conditional store writes.

    Remote state wins unless a local pending operation exists for the entity;
    replacement is whole-entity, never field by field.
    """

    def __init__(self, temp_prefix: str = DEFAULT_TEMP_PREFIX) -> None:
        if not temp_prefix:
            raise ValueError("temp_prefix must be a non-empty string")
        self.temp_prefix = temp_prefix

    def is_temporary(self, entity_id: str) -> bool:
        return entity_id.startswith(self.temp_prefix)

    def remap(self, entity_id: str, mapping: Mapping[str, str]) -> str:
        return mapping.get(entity_id, entity_id)

    def should_overwrite_with_remote(
        self,
        local: Optional[Entity],
        has_pending_op: bool,
    ) -> bool:
        if has_pending_op:
            return False
        if local is not None and self.is_temporary(local.id):
            return False
        return True

    def should_delete_local(
        self,
        local: Entity,
        remote_ids: Container[str],
        has_pending_op: bool,
    ) -> bool:
        if self.is_temporary(local.id):
            return False
        if has_pending_op:
            return False
        return local.id not in remote_ids

    def plan_merge(
        self,
        local: list[Entity],
        remote: list[Entity],
        pending_ids: set[str],
    ) -> MergePlan:
        """
        Build the write set for one pull-and-merge pass.

        Rules:
            - remote entities overwrite local ones unless referenced by pending ops
            - non-temporary local entities missing remotely are deleted unless pending
            - temporary entities are never touched
        """
        plan = MergePlan()
        local_by_id = {entity.id: entity for entity in local}
        remote_ids = {entity.id for entity in remote}

        for entity in remote:
            current = local_by_id.get(entity.id)
            if self.should_overwrite_with_remote(current, entity.id in pending_ids):
                plan.upserts.append(entity)
            else:
                plan.kept.append(entity.id)

        for entity in local:
            if entity.id in remote_ids:
                continue
            if self.should_delete_local(entity, remote_ids, entity.id in pending_ids):
                plan.deletions.append(entity.id)
            else:
                plan.kept.append(entity.id)

        return plan
