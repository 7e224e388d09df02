"""
Content-unit access policies and the TTL cache that serves them.

Policies are authored elsewhere. This module only reads them, either from a
JSON file (``Settings.policy_file``) or from an in-memory mapping.
"""

import datetime
import logging
import pathlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from passbook.errors import UnknownContentUnit

logger = logging.getLogger(__name__)


class ContentPolicy(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    unit_id: str
    name: str | None = None
    passes_required: int = Field(default=0, ge=0)
    exclusive: bool = False
    exclusive_label: str | None = None

    @property
    def is_free(self) -> bool:
        return not self.exclusive and self.passes_required == 0


class PolicySource(Protocol):
    async def load(self, unit_id: str) -> ContentPolicy | None: ...


class StaticPolicySource:
    def __init__(self, policies: Iterable[ContentPolicy] | Mapping[str, ContentPolicy]) -> None:
        if isinstance(policies, Mapping):
            self.policies = dict(policies)
        else:
            self.policies = {policy.unit_id: policy for policy in policies}

    async def load(self, unit_id: str) -> ContentPolicy | None:
        return self.policies.get(unit_id)


class JsonFilePolicySource:
    """
    Reads a JSON array of policies. The file is read on every load, so edits
    become visible as soon as the cached entry expires.
    """

    adapter = TypeAdapter(list[ContentPolicy])

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path

    async def load(self, unit_id: str) -> ContentPolicy | None:
        if not self.path.exists():
            logger.warning(f"Content policy file {self.path} does not exist")
            return None

        policies = self.adapter.validate_json(self.path.read_bytes())
        return next((policy for policy in policies if policy.unit_id == unit_id), None)


@dataclass
class CachedPolicy:
    policy: ContentPolicy
    loaded_at: datetime.datetime


class ContentPolicyCache:
    def __init__(self, source: PolicySource, ttl_seconds: int = 300) -> None:
        self.source = source
        self.ttl = datetime.timedelta(seconds=ttl_seconds)
        self._entries: dict[str, CachedPolicy] = {}

    async def get(self, unit_id: str) -> ContentPolicy:
        now = datetime.datetime.now(datetime.UTC)
        entry = self._entries.get(unit_id)
        if entry is not None and now - entry.loaded_at < self.ttl:
            return entry.policy

        policy = await self.source.load(unit_id)
        if policy is None:
            self._entries.pop(unit_id, None)
            raise UnknownContentUnit(f"No access policy found for content unit {unit_id!r}")

        logger.debug(f"Loaded access policy for {unit_id}")
        self._entries[unit_id] = CachedPolicy(policy=policy, loaded_at=now)
        return policy

    def invalidate(self, unit_id: str | None = None) -> None:
        if unit_id is None:
            self._entries.clear()
        else:
            self._entries.pop(unit_id, None)
