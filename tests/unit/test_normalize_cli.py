"""
Unit Tests: Normalize CLI

Tests for CLI commands using CliRunner with artifacts and payloads written
to a temporary directory.
"""

import json

import pytest
from typer.testing import CliRunner

from recordgraph import __version__
from recordgraph.cli.main import app

runner = CliRunner()

ARTIFACT = {
    "kind": "Request",
    "operation": {
        "kind": "Operation",
        "name": "ViewerQuery",
        "selections": [
            {
                "kind": "LinkedField",
                "name": "me",
                "alias": None,
                "args": None,
                "concreteType": "User",
                "plural": False,
                "storageKey": None,
                "selections": [
                    {"kind": "ScalarField", "name": "id", "alias": None, "args": None, "storageKey": None},
                    {
                        "kind": "Condition",
                        "condition": "withName",
                        "passingValue": True,
                        "selections": [
                            {"kind": "ScalarField", "name": "name", "alias": None, "args": None, "storageKey": None}
                        ],
                    },
                ],
            }
        ],
    },
}


@pytest.fixture
def files(tmp_path):
    """Write the artifact and a response envelope; return their paths."""
    artifact = tmp_path / "artifact.json"
    artifact.write_text(json.dumps(ARTIFACT))
    payload = tmp_path / "response.json"
    payload.write_text(json.dumps({"data": {"me": {"id": "4", "name": "Zuck"}}}))
    return artifact, payload


def test_normalize_json_output(files):
    """--json prints records and descriptors as one JSON document."""
    artifact, payload = files
    result = runner.invoke(
        app,
        ["normalize", str(artifact), str(payload), "--variables", '{"withName": true}', "--json"],
    )

    assert result.exit_code == 0, result.output
    output = json.loads(result.output)
    assert output["records"]["client:root"]["me"] == {"__ref": "4"}
    assert output["records"]["4"] == {"__id": "4", "__typename": "User", "id": "4", "name": "Zuck"}
    assert output["diagnostics"] == []
    assert output["incremental_placeholders"] == []


def test_normalize_reports_missing_fields(tmp_path, files):
    """Diagnostics are included in the output rather than failing the command."""
    artifact, _ = files
    payload = tmp_path / "partial.json"
    payload.write_text(json.dumps({"me": {"id": "4"}}))

    result = runner.invoke(
        app,
        ["normalize", str(artifact), str(payload), "--variables", '{"withName": true}', "--json"],
    )

    assert result.exit_code == 0, result.output
    output = json.loads(result.output)
    assert [d["kind"] for d in output["diagnostics"]] == ["missing_field"]


def test_normalize_treat_missing_as_null(tmp_path, files):
    artifact, _ = files
    payload = tmp_path / "partial.json"
    payload.write_text(json.dumps({"me": {"id": "4"}}))

    result = runner.invoke(
        app,
        [
            "normalize", str(artifact), str(payload),
            "--variables", '{"withName": true}',
            "--treat-missing-as-null", "--json",
        ],
    )

    output = json.loads(result.output)
    assert output["records"]["4"]["name"] is None
    assert output["diagnostics"] == []


def test_normalize_table_output(files):
    artifact, payload = files
    result = runner.invoke(app, ["normalize", str(artifact), str(payload), "-v", '{"withName": false}'])

    assert result.exit_code == 0, result.output
    assert "Records (2)" in result.output
    assert "No diagnostics" in result.output


def test_normalize_fails_on_undefined_variable(files):
    """Fatal normalization errors exit non-zero."""
    artifact, payload = files
    result = runner.invoke(app, ["normalize", str(artifact), str(payload)])

    assert result.exit_code == 1
    assert "Normalization failed" in result.output


def test_normalize_rejects_invalid_artifact(tmp_path, files):
    _, payload = files
    artifact = tmp_path / "bad.json"
    artifact.write_text(json.dumps({"kind": "Operation", "name": "Q", "selections": [{"kind": "Mystery"}]}))

    result = runner.invoke(app, ["normalize", str(artifact), str(payload)])

    assert result.exit_code == 1
    assert "Invalid artifact" in result.output


def test_normalize_rejects_unreadable_payload(tmp_path, files):
    artifact, _ = files
    result = runner.invoke(app, ["normalize", str(artifact), str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "Could not read payload" in result.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
