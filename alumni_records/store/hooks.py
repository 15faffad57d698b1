from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncConnection

from alumni_records.core.exceptions import HookError

if TYPE_CHECKING:
    from alumni_records.store.record import Record
    from alumni_records.store.schema import Entity
    from alumni_records.store.store import RecordStore


class HookEvent(str, Enum):
    CREATED = "created"
    DELETED = "deleted"
    RESTORED = "restored"


@dataclass
class HookContext:
    """What a hook may touch: the store and the open transaction."""
    store: "RecordStore"
    connection: AsyncConnection
    entity: "Entity"
    event: HookEvent

    async def increment(self, entity_name: str, record_id: Any, field: str, amount=1) -> int:
        """Atomic counter update inside the triggering transaction; returns rows matched."""
        return await self.store._increment(self.connection, entity_name, record_id, field, amount)


HookCallback = Callable[[HookContext, "Record"], Awaitable[None]]


@dataclass(frozen=True)
class Hook:
    event: HookEvent
    callback: HookCallback
    name: Optional[str] = None


class CounterCache:
    """Keeps ``parent.counter`` equal to the number of live child rows."""

    def __init__(self, parent: str, foreign_key: str, counter: str, amount=1):
        self.parent = parent
        self.foreign_key = foreign_key
        self.counter = counter
        self.amount = amount

    @property
    def label(self) -> str:
        return f"{self.parent}.{self.counter}"

    async def _apply(self, ctx: HookContext, record: "Record", amount) -> None:
        parent_id = record.get(self.foreign_key)
        if parent_id is None:
            return
        matched = await ctx.increment(self.parent, parent_id, self.counter, amount)
        if not matched:
            raise HookError(
                f"Cannot update {self.label}: {self.parent} {parent_id} does not exist",
                details={
                    "entity": ctx.entity.name,
                    "parent": self.parent,
                    "parent_id": parent_id,
                    "counter": self.counter,
                },
            )

    async def on_created(self, ctx: HookContext, record: "Record") -> None:
        await self._apply(ctx, record, self.amount)

    async def on_deleted(self, ctx: HookContext, record: "Record") -> None:
        await self._apply(ctx, record, -self.amount)

    def hooks(self) -> Tuple[Hook, ...]:
        return (
            Hook(HookEvent.CREATED, self.on_created, name=f"increment {self.label}"),
            Hook(HookEvent.RESTORED, self.on_created, name=f"increment {self.label}"),
            Hook(HookEvent.DELETED, self.on_deleted, name=f"decrement {self.label}"),
        )


def counter_cache(parent: str, foreign_key: str, counter: str, amount=1) -> Tuple[Hook, ...]:
    return CounterCache(parent, foreign_key, counter, amount).hooks()


def after_create(callback: HookCallback, name: Optional[str] = None) -> Hook:
    return Hook(HookEvent.CREATED, callback, name=name)


def after_delete(callback: HookCallback, name: Optional[str] = None) -> Hook:
    return Hook(HookEvent.DELETED, callback, name=name)
