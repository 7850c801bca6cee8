"""
Tests for the response normalizer: field writes, links, identities,
conditions and fatal payload errors.
"""

import pytest

from recordgraph.errors import (
    InvalidDataIDError,
    NormalizationError,
    PayloadShapeError,
    RootRecordMissingError,
    UndefinedVariableError,
)
from recordgraph.normalizer import (
    CollectingDiagnostics,
    DiagnosticKind,
    NormalizationOptions,
    normalize,
)
from recordgraph.selection import (
    ClientExtension,
    Condition,
    Defer,
    InlineFragment,
    LinkedField,
    Operation,
    ScalarField,
    VariableArgument,
    create_normalization_selector,
)
from recordgraph.store import ROOT_ID, InMemoryRecordSource, Record


def _operation(*selections):
    return Operation(name="TestQuery", selections=list(selections))


def _run(source, node, payload, variables=None, data_id=ROOT_ID, **options):
    diagnostics = CollectingDiagnostics()
    result = normalize(
        source,
        create_normalization_selector(node, data_id, variables or {}),
        payload,
        NormalizationOptions(diagnostics=diagnostics, **options),
    )
    return result, diagnostics


USER_FIELDS = [ScalarField(name="id"), ScalarField(name="name")]


@pytest.fixture
def source():
    return InMemoryRecordSource.with_root(precise_type_refinement=False)


@pytest.fixture
def me_query():
    return _operation(LinkedField(name="me", concrete_type="User", selections=USER_FIELDS))


class TestScalarAndLinkedFields:
    """Basic payload -> record writes."""

    def test_linked_record_is_written_under_server_id(self, source, me_query):
        _run(source, me_query, {"me": {"id": "4", "name": "Zuck"}})

        root = source.get(ROOT_ID)
        assert root.get_linked_record_id("me") == "4"
        user = source.get("4")
        assert user.type_name == "User"
        assert user.get_value("name") == "Zuck"
        assert user.get_value("id") == "4"

    def test_alias_reads_response_key_and_writes_storage_key(self, source):
        query = _operation(
            LinkedField(
                name="me",
                concrete_type="User",
                selections=[ScalarField(name="id"), ScalarField(name="name", alias="fullName")],
            )
        )
        _run(source, query, {"me": {"id": "4", "fullName": "Zuck"}})

        user = source.get("4")
        assert user.get_value("name") == "Zuck"
        assert "fullName" not in user

    def test_arguments_shape_the_storage_key(self, source):
        query = _operation(
            LinkedField(
                name="node",
                args=[VariableArgument(name="id", variable_name="nodeID")],
                concrete_type="User",
                selections=USER_FIELDS,
            )
        )
        _run(source, query, {"node": {"id": "4", "name": "Zuck"}}, variables={"nodeID": "4"})

        assert source.get(ROOT_ID).get_linked_record_id('node(id:"4")') == "4"

    def test_null_link_is_stored_as_null(self, source, me_query):
        _, diagnostics = _run(source, me_query, {"me": None})

        root = source.get(ROOT_ID)
        assert "me" in root
        assert root.get_linked_record_id("me") is None
        assert diagnostics.diagnostics == []

    def test_object_without_id_gets_client_id(self, source):
        query = _operation(LinkedField(name="viewer", concrete_type="Viewer", selections=[ScalarField(name="locale")]))
        _run(source, query, {"viewer": {"locale": "en_US"}})

        assert source.get(ROOT_ID).get_linked_record_id("viewer") == "client:root:viewer"
        assert source.get("client:root:viewer").get_value("locale") == "en_US"

    def test_abstract_link_reads_typename_from_payload(self, source):
        query = _operation(LinkedField(name="node", selections=[ScalarField(name="id")]))
        _run(source, query, {"node": {"id": "4", "__typename": "Page"}})

        assert source.get("4").type_name == "Page"

    def test_previous_link_id_is_reused_without_server_id(self, source):
        source.get(ROOT_ID).set_linked_record_id("viewer", "client:viewer:custom")
        query = _operation(LinkedField(name="viewer", concrete_type="Viewer", selections=[ScalarField(name="locale")]))

        _run(source, query, {"viewer": {"locale": "fr_FR"}})

        assert source.get(ROOT_ID).get_linked_record_id("viewer") == "client:viewer:custom"
        assert source.get("client:viewer:custom").get_value("locale") == "fr_FR"

    def test_custom_get_data_id(self, source, me_query):
        _run(
            source,
            me_query,
            {"me": {"id": "4", "name": "Zuck"}},
            get_data_id=lambda value, type_name: f"{type_name}:{value['id']}",
        )

        assert source.get(ROOT_ID).get_linked_record_id("me") == "User:4"
        assert source.has("User:4")


class TestPluralLinks:
    @pytest.fixture
    def friends_query(self):
        return _operation(
            LinkedField(name="friends", concrete_type="User", plural=True, selections=USER_FIELDS)
        )

    def test_null_entries_are_kept(self, source, friends_query):
        _run(source, friends_query, {"friends": [{"id": "1", "name": "A"}, None, {"id": "2", "name": "B"}]})

        assert source.get(ROOT_ID).get_linked_record_ids("friends") == ["1", None, "2"]

    def test_elements_without_id_get_indexed_client_ids(self, source):
        query = _operation(
            LinkedField(name="tags", concrete_type="Tag", plural=True, selections=[ScalarField(name="label")])
        )
        _run(source, query, {"tags": [{"label": "a"}, {"label": "b"}]})

        assert source.get(ROOT_ID).get_linked_record_ids("tags") == ["client:root:tags:0", "client:root:tags:1"]
        assert source.get("client:root:tags:1").get_value("label") == "b"

    def test_previous_ids_reused_by_index(self, source):
        source.get(ROOT_ID).set_linked_record_ids("tags", ["tag-a", "tag-b"])
        query = _operation(
            LinkedField(name="tags", concrete_type="Tag", plural=True, selections=[ScalarField(name="label")])
        )

        _run(source, query, {"tags": [{"label": "x"}, {"label": "y"}, {"label": "z"}]})

        assert source.get(ROOT_ID).get_linked_record_ids("tags") == ["tag-a", "tag-b", "client:root:tags:2"]

    def test_empty_list(self, source, friends_query):
        _run(source, friends_query, {"friends": []})
        assert source.get(ROOT_ID).get_linked_record_ids("friends") == []


class TestMissingFields:
    def test_absent_field_is_skipped_and_reported(self, source, me_query):
        _, diagnostics = _run(source, me_query, {"me": {"id": "4"}})

        assert "name" not in source.get("4")
        missing = diagnostics.of_kind(DiagnosticKind.MISSING_FIELD)
        assert len(missing) == 1
        assert missing[0].data_id == "4"
        assert missing[0].storage_key == "name"

    def test_absent_field_written_as_null_when_configured(self, source, me_query):
        _, diagnostics = _run(
            source, me_query, {"me": {"id": "4"}}, treat_missing_fields_as_null=True
        )

        user = source.get("4")
        assert "name" in user
        assert user.get_value("name") is None
        assert diagnostics.diagnostics == []

    def test_client_extension_fields_are_never_required(self, source):
        query = _operation(
            LinkedField(
                name="me",
                concrete_type="User",
                selections=[ScalarField(name="id"), ClientExtension(selections=[ScalarField(name="isSaving")])],
            )
        )

        _, diagnostics = _run(source, query, {"me": {"id": "4"}}, treat_missing_fields_as_null=True)

        assert "isSaving" not in source.get("4")
        assert diagnostics.diagnostics == []

    def test_client_extension_values_are_written_when_present(self, source):
        query = _operation(ClientExtension(selections=[ScalarField(name="localFlag")]))
        _run(source, query, {"localFlag": True})
        assert source.get(ROOT_ID).get_value("localFlag") is True


class TestConditions:
    @pytest.fixture
    def conditional_query(self):
        return _operation(
            Condition(
                condition="withName",
                passing_value=True,
                selections=[ScalarField(name="name")],
            ),
            Condition(
                condition="withName",
                passing_value=False,
                selections=[ScalarField(name="nickname")],
            ),
        )

    def test_include_when_variable_matches(self, source, conditional_query):
        _run(source, conditional_query, {"name": "Zuck", "nickname": "Z"}, variables={"withName": True})

        root = source.get(ROOT_ID)
        assert root.get_value("name") == "Zuck"
        assert "nickname" not in root

    def test_skip_when_variable_differs(self, source, conditional_query):
        _run(source, conditional_query, {"name": "Zuck", "nickname": "Z"}, variables={"withName": False})

        root = source.get(ROOT_ID)
        assert "name" not in root
        assert root.get_value("nickname") == "Z"

    def test_undefined_condition_variable_is_fatal(self, source, conditional_query):
        with pytest.raises(UndefinedVariableError):
            _run(source, conditional_query, {"name": "Zuck"})


class TestConcreteInlineFragments:
    @pytest.fixture
    def node_query(self):
        return _operation(
            LinkedField(
                name="node",
                selections=[
                    ScalarField(name="id"),
                    InlineFragment(type="User", selections=[ScalarField(name="name")]),
                    InlineFragment(type="Page", selections=[ScalarField(name="likers")]),
                ],
            )
        )

    def test_only_matching_fragment_applies(self, source, node_query):
        _, diagnostics = _run(source, node_query, {"node": {"id": "4", "__typename": "User", "name": "Zuck"}})

        user = source.get("4")
        assert user.get_value("name") == "Zuck"
        assert "likers" not in user
        assert diagnostics.diagnostics == []


class TestIdempotenceAndPaths:
    def test_same_payload_same_records(self, me_query):
        payload = {"me": {"id": "4", "name": "Zuck"}}
        first = InMemoryRecordSource.with_root(precise_type_refinement=False)
        second = InMemoryRecordSource.with_root(precise_type_refinement=False)

        _run(first, me_query, payload)
        _run(second, me_query, payload)
        _run(second, me_query, payload)

        assert first.to_json() == second.to_json()

    def test_normalizing_under_a_non_root_record(self, source):
        source.set("4", Record("4", "User"))
        fragment_root = LinkedField(name="me", concrete_type="User", selections=[ScalarField(name="name")])

        _run(source, fragment_root, {"name": "Zuck"}, data_id="4", path=["viewer", "actor"])

        assert source.get("4").get_value("name") == "Zuck"

    def test_result_carries_source(self, source, me_query):
        result, _ = _run(source, me_query, {"me": {"id": "4", "name": "Zuck"}})

        assert result.source is source
        assert result.errors is None
        assert result.is_final is False
        assert result.contract_version == "v1"


class TestFatalErrors:
    def test_missing_root_record(self, me_query):
        empty = InMemoryRecordSource(precise_type_refinement=False)
        with pytest.raises(RootRecordMissingError) as exc:
            _run(empty, me_query, {"me": None})
        assert exc.value.data_id == ROOT_ID

    def test_undefined_argument_variable(self, source):
        query = _operation(
            LinkedField(
                name="node",
                args=[VariableArgument(name="id", variable_name="nodeID")],
                concrete_type="User",
                selections=USER_FIELDS,
            )
        )
        with pytest.raises(UndefinedVariableError):
            _run(source, query, {"node": None})

    def test_scalar_where_object_expected(self, source, me_query):
        with pytest.raises(PayloadShapeError):
            _run(source, me_query, {"me": "4"})

    def test_object_where_list_expected(self, source):
        query = _operation(LinkedField(name="friends", concrete_type="User", plural=True, selections=USER_FIELDS))
        with pytest.raises(PayloadShapeError):
            _run(source, query, {"friends": {"id": "1"}})

    def test_scalar_list_element(self, source):
        query = _operation(LinkedField(name="friends", concrete_type="User", plural=True, selections=USER_FIELDS))
        with pytest.raises(PayloadShapeError):
            _run(source, query, {"friends": ["1"]})

    def test_abstract_link_without_typename(self, source):
        query = _operation(LinkedField(name="node", selections=[ScalarField(name="id")]))
        with pytest.raises(PayloadShapeError):
            _run(source, query, {"node": {"id": "4"}})

    def test_abstract_link_with_non_string_typename(self, source):
        """A malformed typename is a shape error before any placeholder is built."""
        query = _operation(
            LinkedField(
                name="node",
                selections=[
                    ScalarField(name="id"),
                    Defer(label="NodeDetails", selections=[ScalarField(name="x")]),
                ],
            )
        )
        with pytest.raises(PayloadShapeError):
            _run(source, query, {"node": {"id": "1", "__typename": 7, "x": 1}})
        assert source.get("1") is None

    def test_non_string_identity(self, source, me_query):
        with pytest.raises(InvalidDataIDError):
            _run(source, me_query, {"me": {"id": 4, "name": "Zuck"}})

    def test_fatal_errors_share_a_base_class(self, source, me_query):
        with pytest.raises(NormalizationError):
            _run(source, me_query, {"me": "4"})

    def test_earlier_writes_survive_a_fatal_error(self, source):
        query = _operation(
            ScalarField(name="greeting"),
            LinkedField(name="me", concrete_type="User", selections=USER_FIELDS),
        )
        with pytest.raises(PayloadShapeError):
            _run(source, query, {"greeting": "hi", "me": 42})

        assert source.get(ROOT_ID).get_value("greeting") == "hi"
