"""
Test data factories.

Each factory has default generation definitions per field: a plain value is
used as-is, a Sequence is formatted with a counter shared by all fields of
one object, and an AfterCreate callback runs once the object exists and its
result is written back onto it.
"""

import itertools
import uuid
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.models.customize_transaction import CustomizeTransactionPost, TransactionStatus
from src.kernel.models.option import Option
from src.kernel.models.user import User, UserRole

_counter = itertools.count(1)


class Sequence:
    """Format template with the object's sequence number, e.g. 'user_{n}'."""

    def __init__(self, template: str):
        self.template = template

    def render(self, n: int) -> str:
        return self.template.format(n=n)


class AfterCreate:
    """Compute a field from the created object."""

    def __init__(self, func: Callable[[Any], Any]):
        self.func = func


class Factory:
    model: Any = None
    defaults: Dict[str, Any] = {}

    def __init__(self, session: AsyncSession, defaults: Optional[Dict[str, Any]] = None):
        self.session = session
        if defaults is not None:
            self.defaults = defaults

    def generate_args(self, args: Dict[str, Any]):
        n = next(_counter)
        generated = dict(args)
        callbacks: Dict[str, AfterCreate] = {}
        for field, generator in self.defaults.items():
            if field in generated:
                continue
            if isinstance(generator, AfterCreate):
                callbacks[field] = generator
            elif isinstance(generator, Sequence):
                generated[field] = generator.render(n)
            elif callable(generator):
                generated[field] = generator()
            else:
                generated[field] = generator
        return generated, callbacks

    async def create(self, **args: Any):
        generated, callbacks = self.generate_args(args)
        obj = self.model(**generated)
        self.session.add(obj)
        await self.session.flush()
        for field, callback in callbacks.items():
            setattr(obj, field, callback.func(obj))
        if callbacks:
            await self.session.flush()
        return obj

    async def create_many(self, count: int, **args: Any) -> List[Any]:
        return [await self.create(**args) for _ in range(count)]


class UserFactory(Factory):
    model = User
    defaults = {
        "id": uuid.uuid4,
        "email": Sequence("user_{n}@example.com"),
        "display_name": Sequence("User {n}"),
        "role": UserRole.SUBSCRIBER,
        "is_active": True,
    }


class OptionFactory(Factory):
    model = Option
    defaults = {
        "name": Sequence("option_{n}"),
        "value": Sequence("value {n}"),
        "autoload": True,
    }


class TransactionPostFactory(Factory):
    model = CustomizeTransactionPost
    defaults = {
        "id": uuid.uuid4,
        "status": TransactionStatus.DRAFT,
        "payload": dict,
        "stylesheet": "meridian",
    }
