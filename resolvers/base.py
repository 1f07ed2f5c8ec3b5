import logging
from collections.abc import Mapping
from copy import copy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Collection, Dict, Optional, Type
from graphql import (
    FieldNode,
    GraphQLResolveInfo,
    InlineFragmentNode,
    NamedTypeNode,
    NameNode,
    SelectionSetNode,
    parse,
)
from pydantic import ValidationError
from models.compound import MissingFieldError, SubgraphEntity

logger = logging.getLogger(__name__)

# Response keys injected into remote documents for derived-field inputs
DERIVED_ALIAS_PREFIX = "_derived_"


@dataclass
class DerivedField:
    """A locally computed field added to a remote object type.

    ``fragment`` lists the base fields (in remote names) the formula needs;
    the gateway fetches them under ``DERIVED_ALIAS_PREFIX`` aliases and
    rebuilds ``model`` from them before calling ``compute``.
    """
    type_name: str
    field_name: str
    fragment: str
    model: Type[SubgraphEntity]
    compute: Callable[[Any], Optional[Decimal]]
    description: Optional[str] = None
    selection_set: SelectionSetNode = field(init=False, repr=False)

    def __post_init__(self):
        operation = parse(f"{{ {self.fragment} }}", no_location=True).definitions[0]
        self.selection_set = operation.selection_set

    @property
    def key(self):
        return self.type_name, self.field_name

    def base_field_names(self) -> Collection[str]:
        return [selection.name.value for selection in self.selection_set.selections]

    def to_sdl(self) -> str:
        line = f"  {self.field_name}: BigDecimal"
        if self.description:
            return f'  """{self.description}"""\n{line}'
        return line

    def remote_selection(self, directives=()) -> InlineFragmentNode:
        """Inline fragment fetching this field's inputs under prefixed aliases"""
        aliased = []
        for selection in self.selection_set.selections:
            node: FieldNode = copy(selection)
            node.alias = NameNode(value=DERIVED_ALIAS_PREFIX + selection.name.value)
            aliased.append(node)
        return InlineFragmentNode(
            type_condition=NamedTypeNode(name=NameNode(value=self.type_name)),
            directives=tuple(directives or ()),
            selection_set=SelectionSetNode(selections=tuple(aliased)),
        )

    def load_record(self, source: Mapping[str, Any]) -> SubgraphEntity:
        record: Dict[str, Any] = {
            name: source.get(DERIVED_ALIAS_PREFIX + name)
            for name in self.base_field_names()
        }
        try:
            return self.model.model_validate(record)
        except ValidationError as e:
            raise ValueError(
                f"Invalid subgraph data for {self.type_name}.{self.field_name}: "
                f"{e.error_count()} validation error(s), first: {e.errors()[0]['msg']}"
            ) from e

    def resolve(self, source: Any, info: GraphQLResolveInfo, **_args) -> Optional[Decimal]:
        if not isinstance(source, Mapping):
            raise TypeError(f"Cannot resolve {self.type_name}.{self.field_name} from {type(source)}")
        entity = self.load_record(source)
        try:
            return self.compute(entity)
        except MissingFieldError as e:
            logger.debug(f"{self.type_name}.{self.field_name} at {info.path.as_list()}: {e}")
            raise
