"""
Shared fixtures and step definitions for BDD tests.

- runner, context, state_path: available to all scenario files in this directory
- state_path: a JSON cache under tmp_path that every CLI command loads and saves
- no_logging: autouse, prevents log file creation during tests
- 'the output contains' / 'the command fails' steps: shared across all feature files
"""

import json

import pytest
from unittest.mock import patch
from click.testing import CliRunner
from pytest_bdd import given, then, parsers

from outreach.store.repository import LocalCache, StateRepository


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def context():
    """Mutable dict shared between Given/When/Then steps within a scenario."""
    return {}


@pytest.fixture
def state_path(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"contacts": [], "activities": []}), encoding="utf-8")
    with patch("outreach.cli.main._repository", side_effect=lambda: StateRepository(LocalCache(path))):
        yield path


@pytest.fixture(autouse=True)
def no_logging():
    with patch("outreach.cli.main.configure_logging"):
        yield


def read_state(path):
    return json.loads(path.read_text(encoding="utf-8"))


def add_contact(path, **fields):
    state = read_state(path)
    state["contacts"].append(fields)
    path.write_text(json.dumps(state), encoding="utf-8")


@given("the contact list is empty")
def empty_list(state_path):
    assert read_state(state_path)["contacts"] == []


@given(parsers.parse('a contact "{vendor}" with email "{email}" exists'))
def contact_exists(state_path, vendor, email):
    add_contact(
        state_path,
        id=vendor.lower().replace(" ", "-"),
        vendorName=vendor,
        companyName=vendor,
        email=email,
        status="Not Started",
        tags=[],
    )


@then(parsers.parse('the output contains "{text}"'))
def output_contains(context, text):
    assert text in context["result"].output, (
        f"Expected {text!r} in output:\n{context['result'].output}"
    )


@then("the command fails")
def command_fails(context):
    assert context["result"].exit_code != 0, context["result"].output


@then(parsers.parse("the store holds {count:d} contacts"))
def store_count(state_path, count):
    assert len(read_state(state_path)["contacts"]) == count


@then(parsers.parse('contact "{contact_id}" has status "{status}"'))
def contact_status(state_path, contact_id, status):
    contacts = {c["id"]: c for c in read_state(state_path)["contacts"]}
    assert contacts[contact_id]["status"] == status
