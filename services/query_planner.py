import logging
from copy import copy
from typing import Any, Dict, List, Optional, Set
from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSchema,
    InlineFragmentNode,
    NameNode,
    OperationDefinitionNode,
    SelectionSetNode,
    TypeInfo,
    TypeInfoVisitor,
    VariableNode,
    Visitor,
    is_abstract_type,
    visit,
)
from services.schema_service import DerivedFieldIndex

logger = logging.getLogger(__name__)

TYPENAME = "__typename"


class DerivedFieldRewriter(Visitor):
    """Replaces derived fields by their input fragments.

    Must run under a ``TypeInfoVisitor`` sharing ``type_info`` so parent
    types are known.
    """

    def __init__(self, type_info: TypeInfo, derived_fields: DerivedFieldIndex):
        super().__init__()
        self.type_info = type_info
        self.derived_fields = derived_fields

    def enter_field(self, node: FieldNode, *_args):
        parent_type = self.type_info.get_parent_type()
        if parent_type is None:
            return None
        derived = self.derived_fields.get((parent_type.name, node.name.value))
        if derived is None:
            return None
        return derived.remote_selection(node.directives)

    def enter_selection_set(self, node: SelectionSetNode, *_args):
        parent_type = self.type_info.get_parent_type()
        if parent_type is None or not is_abstract_type(parent_type):
            return None
        if any(
            isinstance(selection, FieldNode)
            and selection.alias is None
            and selection.name.value == TYPENAME
            for selection in node.selections
        ):
            return None
        typename = FieldNode(name=NameNode(value=TYPENAME), arguments=(), directives=())
        return SelectionSetNode(selections=(*node.selections, typename))


def collect_fragment_names(
    selection_set: Optional[SelectionSetNode],
    fragments: Dict[str, FragmentDefinitionNode],
    seen: Set[str],
) -> None:
    if selection_set is None:
        return
    for selection in selection_set.selections:
        if isinstance(selection, FragmentSpreadNode):
            name = selection.name.value
            if name not in seen and name in fragments:
                seen.add(name)
                collect_fragment_names(fragments[name].selection_set, fragments, seen)
        elif isinstance(selection, (FieldNode, InlineFragmentNode)):
            collect_fragment_names(selection.selection_set, fragments, seen)


class VariableCollector(Visitor):
    def __init__(self):
        super().__init__()
        self.names: Set[str] = set()

    def enter_variable(self, node: VariableNode, *_args):
        self.names.add(node.name.value)


def used_variable_names(document: DocumentNode) -> Set[str]:
    """Variables referenced by selections and directives, not by their definitions"""
    collector = VariableCollector()
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            visit(definition.selection_set, collector)
            for directive in definition.directives or ():
                visit(directive, collector)
        else:
            visit(definition, collector)
    return collector.names


def prune_variable_definitions(document: DocumentNode) -> DocumentNode:
    used = used_variable_names(document)
    definitions = []
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode) and definition.variable_definitions:
            kept = tuple(
                variable for variable in definition.variable_definitions
                if variable.variable.name.value in used
            )
            if len(kept) != len(definition.variable_definitions):
                definition = copy(definition)
                definition.variable_definitions = kept
        definitions.append(definition)
    return DocumentNode(definitions=tuple(definitions))


def forwarded_variables(
    document: DocumentNode, variables: Optional[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    """Keep only the variables ``document`` still declares"""
    if not variables:
        return variables
    declared = {
        variable.variable.name.value
        for definition in document.definitions
        if isinstance(definition, OperationDefinitionNode)
        for variable in definition.variable_definitions or ()
    }
    return {name: value for name, value in variables.items() if name in declared}


class QueryPlanner:
    def __init__(self, schema: GraphQLSchema, derived_fields: DerivedFieldIndex):
        self.schema = schema
        self.derived_fields = derived_fields

    def plan(
        self, document: DocumentNode, operation: OperationDefinitionNode
    ) -> Optional[DocumentNode]:
        """Build the document to send upstream for ``operation``.

        Returns None when the operation only asks for root introspection
        fields and there is nothing to fetch. Variables only the dropped
        introspection fields used are no longer declared.
        """
        root_selections = [
            selection for selection in operation.selection_set.selections
            if not (isinstance(selection, FieldNode) and selection.name.value.startswith("__"))
        ]
        if not root_selections:
            return None
        remote_operation = copy(operation)
        remote_operation.selection_set = SelectionSetNode(selections=tuple(root_selections))

        fragments = {
            definition.name.value: definition
            for definition in document.definitions
            if isinstance(definition, FragmentDefinitionNode)
        }
        used: Set[str] = set()
        collect_fragment_names(remote_operation.selection_set, fragments, used)
        definitions: List = [remote_operation]
        definitions.extend(fragments[name] for name in fragments if name in used)

        remote_document = DocumentNode(definitions=tuple(definitions))
        type_info = TypeInfo(self.schema)
        rewriter = DerivedFieldRewriter(type_info, self.derived_fields)
        remote_document = visit(remote_document, TypeInfoVisitor(type_info, rewriter))
        return prune_variable_definitions(remote_document)
