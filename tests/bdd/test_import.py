import json

from pytest_bdd import scenarios, given, when, then, parsers

from outreach.cli.main import cli

scenarios("features/import.feature")


@given(parsers.parse('a CSV file with header "{header}"'))
def csv_file(tmp_path, context, header):
    path = tmp_path / "leads.csv"
    path.write_text(header + "\n", encoding="utf-8")
    context["csv_path"] = path


@given(parsers.parse('the CSV row "{row}"'))
def csv_row(context, row):
    with open(context["csv_path"], "a", encoding="utf-8") as f:
        f.write(row + "\n")


@when("the salesperson imports the file and confirms")
def import_confirm(runner, context, state_path):
    context["result"] = runner.invoke(cli, ["import", str(context["csv_path"]), "--yes"])


@when("the salesperson imports the file and declines")
def import_decline(runner, context, state_path):
    context["result"] = runner.invoke(cli, ["import", str(context["csv_path"])], input="n\n")


@then(parsers.parse('contact "{vendor}" has phone "{phone}"'))
def contact_phone(state_path, vendor, phone):
    contacts = json.loads(state_path.read_text(encoding="utf-8"))["contacts"]
    assert [c["phone"] for c in contacts if c["vendorName"] == vendor] == [phone]
