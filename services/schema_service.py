import logging
from collections import defaultdict
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple
from graphql import (
    FieldsOnCorrectTypeRule,
    GraphQLObjectType,
    GraphQLResolveInfo,
    GraphQLSchema,
    KnownArgumentNamesRule,
    ScalarLeafsRule,
    extend_schema,
    parse,
    validate,
)
from resolvers.base import DerivedField
from utils.decimals import format_decimal

logger = logging.getLogger(__name__)

BIG_DECIMAL = "BigDecimal"

FRAGMENT_RULES = [FieldsOnCorrectTypeRule, ScalarLeafsRule, KnownArgumentNamesRule]

DerivedFieldIndex = Dict[Tuple[str, str], DerivedField]


def serialize_big_decimal(value: Any) -> Any:
    """BigDecimal output: Decimals as plain strings, remote strings untouched"""
    if isinstance(value, Decimal):
        return format_decimal(value)
    return value


def resolve_by_response_key(source: Any, info: GraphQLResolveInfo, **_args) -> Any:
    """Read already-fetched subgraph data by alias-or-name"""
    if isinstance(source, Mapping):
        return source.get(info.path.key)
    return getattr(source, info.field_name, None)


def install_response_key_resolvers(schema: GraphQLSchema) -> None:
    """Fields without a resolver of their own read the fetched subgraph data"""
    for named_type in schema.type_map.values():
        if not isinstance(named_type, GraphQLObjectType) or named_type.name.startswith("__"):
            continue
        for field in named_type.fields.values():
            if field.resolve is None:
                field.resolve = resolve_by_response_key


def fragment_errors(schema: GraphQLSchema, derived: DerivedField) -> List[str]:
    """Validate a derived field's fragment against its host type in ``schema``"""
    document = parse(
        f"fragment {derived.field_name}Inputs on {derived.type_name} {{ {derived.fragment} }}",
        no_location=True,
    )
    return [error.message for error in validate(schema, document, rules=FRAGMENT_RULES)]


def select_applicable(
    remote_schema: GraphQLSchema, derived_fields: Iterable[DerivedField]
) -> List[DerivedField]:
    """Keep the derived fields the remote schema can feed"""
    applicable = []
    for derived in derived_fields:
        host = remote_schema.get_type(derived.type_name)
        if host is None:
            logger.debug(f"Skipping {derived.type_name}.{derived.field_name}: type not in subgraph")
            continue
        if not isinstance(host, GraphQLObjectType):
            logger.warning(f"Skipping {derived.type_name}.{derived.field_name}: not an object type")
            continue
        if derived.field_name in host.fields:
            logger.warning(
                f"Skipping {derived.type_name}.{derived.field_name}: subgraph already defines it"
            )
            continue
        errors = fragment_errors(remote_schema, derived)
        if errors:
            logger.warning(
                f"Skipping {derived.type_name}.{derived.field_name}: fragment does not match "
                f"subgraph schema ({'; '.join(errors)})"
            )
            continue
        applicable.append(derived)
    return applicable


def extension_sdl(remote_schema: GraphQLSchema, derived_fields: List[DerivedField]) -> str:
    by_type: Dict[str, List[DerivedField]] = defaultdict(list)
    for derived in derived_fields:
        by_type[derived.type_name].append(derived)

    blocks = []
    if remote_schema.get_type(BIG_DECIMAL) is None:
        blocks.append(f"scalar {BIG_DECIMAL}")
    for type_name, fields in by_type.items():
        body = "\n".join(derived.to_sdl() for derived in fields)
        blocks.append(f"extend type {type_name} {{\n{body}\n}}")
    return "\n\n".join(blocks)


def build_gateway_schema(
    remote_schema: GraphQLSchema, derived_fields: Iterable[DerivedField]
) -> Tuple[GraphQLSchema, DerivedFieldIndex]:
    """Extend the introspected subgraph schema with locally computed fields.

    Returns the extended schema and the derived fields actually installed,
    keyed by ``(type name, field name)``.
    """
    applicable = select_applicable(remote_schema, derived_fields)
    if not applicable:
        logger.warning("No derived fields apply to this subgraph; serving it unchanged")
        install_response_key_resolvers(remote_schema)
        return remote_schema, {}

    sdl = extension_sdl(remote_schema, applicable)
    logger.debug(f"Schema extension:\n{sdl}")
    schema = extend_schema(remote_schema, parse(sdl))

    installed: DerivedFieldIndex = {}
    for derived in applicable:
        host = schema.get_type(derived.type_name)
        host.fields[derived.field_name].resolve = derived.resolve
        installed[derived.key] = derived

    schema.get_type(BIG_DECIMAL).serialize = serialize_big_decimal
    install_response_key_resolvers(schema)

    summary = ", ".join(f"{type_name}.{field_name}" for type_name, field_name in installed)
    logger.info(f"Installed {len(installed)} derived fields: {summary}")
    return schema, installed
