"""
Model registry.

A model binds a document class to a collection so queries decode into that
class without passing it on every call:

    conn.register_model(User, "users")
    adults = await conn.model("user").find().where({"age >=": 18}).all()
"""

import logging
from typing import Any, Dict, List, Optional, Type

from ..context import OperationContext
from ..exceptions import ModelNotRegisteredError
from ..query.builder import Query
from ..query.filters import Filter
from .collection import Collection

logger = logging.getLogger(__name__)


class Model:
    """A document class bound to its collection."""

    def __init__(self, document_class: Type[Any], collection: Collection):
        self.document_class = document_class
        self.collection = collection

    @property
    def name(self) -> str:
        return model_name(self.document_class)

    def find(
        self,
        filter: Optional[Filter] = None,
        hook: Any = None,
        ctx: Optional[OperationContext] = None,
    ) -> Query:
        """Start a query whose results decode into the model's document class."""
        return self.collection.find(
            filter, hook=hook, ctx=ctx, document_class=self.document_class
        )

    def __repr__(self) -> str:
        return f"Model(name={self.name!r}, collection={self.collection.name!r})"


def model_name(document_class: Any) -> str:
    """Registry key of a document class (or of an instance's class)."""
    cls = document_class if isinstance(document_class, type) else type(document_class)
    return cls.__name__.lower()


class ModelRegistry:
    """Models of one connection, keyed by lowercased class name."""

    def __init__(self) -> None:
        self._models: Dict[str, Model] = {}

    def register(self, document_class: Any, collection: Collection) -> Model:
        """
        Register a document class (or an instance of it) on a collection.

        Registering the same name twice keeps the first registration.

        Raises:
            ValueError: If `document_class` is None
        """
        if document_class is None:
            raise ValueError("document class can not be None")

        if not isinstance(document_class, type):
            document_class = type(document_class)
        name = model_name(document_class)

        existing = self._models.get(name)
        if existing is not None:
            logger.warning(f"Tried to register model '{name}' twice")
            return existing

        model = Model(document_class, collection)
        self._models[name] = model
        logger.debug(f"Registered model '{name}' on collection '{collection.name}'")
        return model

    def get(self, name: str) -> Model:
        """
        Look up a model by name, case-insensitively.

        Raises:
            ModelNotRegisteredError: If no model has that name
        """
        try:
            return self._models[name.lower()]
        except KeyError:
            raise ModelNotRegisteredError(name) from None

    def names(self) -> List[str]:
        return list(self._models)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._models

    def __len__(self) -> int:
        return len(self._models)
