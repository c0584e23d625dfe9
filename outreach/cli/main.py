#!/usr/bin/env python3
"""
Outreach Tracker Terminal CLI
Command-line interface over the shared contact store.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from outreach.config import config
from outreach.engine import analytics, crm, export
from outreach.engine.ai_client import MODE_CHOICES, AIClientError, call_ai
from outreach.engine.csv_import import CSVImportError, prepare_import
from outreach.engine.filters import AdvancedFilters, ContactFilter, filter_contacts
from outreach.engine.projects import find_project_by_name, upsert_project
from outreach.engine.sorting import DESCENDING, SORT_COLUMNS, SortState, sort_contacts
from outreach.logging_config import LOGGER_NAME, configure_logging, log_call
from outreach.models import CONTACT_STATUSES, DEFAULT_PROJECT_STATUS, TASK_COMPLETED, TASK_OPEN, TASK_PRIORITIES
from outreach.store.repository import StateRepository, open_state

PREVIEW_ROWS = 10


def _repository() -> StateRepository:
    return StateRepository.from_config()


def _fit(value: Optional[str], width: int) -> str:
    text = (value or '').replace('\n', ' ')
    return text[:width - 2] if len(text) > width - 2 else text


def _short(record_id: str) -> str:
    return (record_id or '')[:8]


def _resolve_contact(store, contact_id: str):
    """Exact id, else a unique id prefix (the list view shows 8 characters)."""
    contact = store.find_contact(contact_id)
    if contact is not None:
        return contact
    matches = [c for c in store.contacts if c.id.startswith(contact_id)]
    return matches[0] if len(matches) == 1 else None


def _resolve_task(store, task_id: str):
    task = store.find_task(task_id)
    if task is not None:
        return task
    matches = [t for t in store.tasks if t.id.startswith(task_id)]
    return matches[0] if len(matches) == 1 else None


def _print_contacts(rows) -> None:
    click.echo(f"{'ID':<10} {'Vendor':<28} {'Contact':<20} {'Email':<28} {'Status':<12} {'Category':<14}")
    click.echo("-" * 116)
    for c in rows:
        click.echo(
            f"{_short(c.id):<10} {_fit(c.display_name, 28):<28} {_fit(c.contact_name, 20):<20} "
            f"{_fit(c.primary_email, 28):<28} {_fit(c.status, 12):<12} {_fit(c.category, 14):<14}"
        )


@click.group()
def cli():
    """Outreach Tracker - prospect contacts, activities and follow-ups"""
    configure_logging()


# =============================================================================
# CONTACTS COMMANDS
# =============================================================================

@cli.group()
def contacts():
    """Manage contacts"""
    pass


@contacts.command('list')
@click.option('--search', default='', help='Text matched against vendor, contact, company, email, phone')
@click.option('--status', default='', help='Exact status')
@click.option('--category', default='', help='Exact category')
@click.option('--segment', default='', help='Exact segment')
@click.option('--project', default='', help='Exact project name')
@click.option('--any-status', multiple=True, help='Status allowed (repeatable)')
@click.option('--any-category', multiple=True, help='Category allowed (repeatable)')
@click.option('--any-segment', multiple=True, help='Segment allowed (repeatable)')
@click.option('--tag', 'tags', multiple=True, help='Tag id; contact needs at least one (repeatable)')
@click.option('--sort', 'sort_column', type=click.Choice(sorted(SORT_COLUMNS)), help='Sort column')
@click.option('--desc', is_flag=True, help='Descending order (with --sort)')
@log_call
def contacts_list(search, status, category, segment, project, any_status, any_category, any_segment,
                  tags, sort_column, desc):
    """List contacts, filtered and sorted"""
    with open_state(_repository(), save=False) as store:
        criteria = ContactFilter(
            search_text=search,
            status=status,
            category=category,
            segment=segment,
            project=project,
            advanced=AdvancedFilters(
                statuses=list(any_status),
                categories=list(any_category),
                segments=list(any_segment),
                tag_ids=list(tags),
            ),
        )
        state = SortState()
        if sort_column:
            state.click(sort_column)
            if desc:
                state.click(sort_column)
        results = sort_contacts(filter_contacts(store.contacts, criteria), state)

    if not results:
        click.echo("No contacts found.")
        return

    click.echo(f"\nFound {len(results)} contacts:\n")
    _print_contacts(results)


@contacts.command('show')
@click.argument('contact_id')
@log_call
def contacts_show(contact_id):
    """Show full contact details and activity history"""
    logger = logging.getLogger(LOGGER_NAME)
    with open_state(_repository(), save=False) as store:
        contact = _resolve_contact(store, contact_id)
        if contact is None:
            logger.warning(f"contacts_show | contact_id={contact_id} not found")
            click.echo(f"Contact {contact_id} not found.", err=True)
            sys.exit(1)
        history = crm.activities_for_contact(store, contact.id)
        tag_names = [t.name for t in (store.find_tag(tid) for tid in contact.tags) if t is not None]

    click.echo(f"\n{'='*80}")
    click.echo(f"CONTACT {contact.id}: {contact.display_name or '(no name)'}")
    click.echo(f"{'='*80}")
    click.echo(f"Contact:     {contact.contact_name or '(not set)'}")
    click.echo(f"Title:       {contact.title or '(not set)'}")
    click.echo(f"Email:       {contact.email or '(not set)'}")
    click.echo(f"Phone:       {contact.phone or '(not set)'}")
    click.echo(f"Website:     {contact.website or '(not set)'}")
    click.echo(f"Category:    {contact.category or '(not set)'}")
    click.echo(f"Segment:     {contact.segment or '(not set)'}")
    click.echo(f"Project:     {contact.project or '(not set)'}")
    click.echo(f"Status:      {contact.status}")
    click.echo(f"Tags:        {', '.join(tag_names) or '(none)'}")
    click.echo(f"Lead source: {contact.lead_source or '(not set)'}")
    click.echo(f"Created:     {contact.created_at or '-'}")
    click.echo(f"Last touch:  {contact.last_contact or '-'}")
    click.echo(f"Follow-up:   {contact.follow_up_date or '-'}")

    if contact.notes:
        click.echo(f"\nNotes:\n{contact.notes}")

    click.echo(f"\n{'='*80}")
    click.echo("ACTIVITY HISTORY")
    click.echo(f"{'='*80}")
    if history:
        for a in history:
            click.echo(f"\n[{a.date}] {a.type}")
            if a.notes:
                click.echo(f"  {a.notes[:100]}")
            if a.follow_up_date:
                click.echo(f"  Follow up: {a.follow_up_date}")
    else:
        click.echo("No activities yet.")
    click.echo()


@contacts.command('add')
@click.option('--vendor', 'vendor_name', default='', help='Vendor / organisation name')
@click.option('--company', 'company_name', default='', help='Company name (defaults to vendor)')
@click.option('--contact-name', default='', help='Person name')
@click.option('--title', default='', help='Job title')
@click.option('--email', default='')
@click.option('--phone', default='')
@click.option('--website', default='')
@click.option('--category', default='')
@click.option('--segment', default='')
@click.option('--status', type=click.Choice(CONTACT_STATUSES), default=CONTACT_STATUSES[0], show_default=True)
@click.option('--project', default='')
@click.option('--notes', default='')
@click.option('--lead-source', default='', help='Where the lead came from')
@click.option('--follow-up', 'follow_up_date', default='', help='Follow-up date (YYYY-MM-DD)')
@log_call
def contacts_add(**fields):
    """Add a new contact"""
    with open_state(_repository()) as store:
        contact = crm.save_contact(store, fields)
        if contact is None:
            click.echo("Error: a vendor, company, contact name, email or phone is required.", err=True)
            sys.exit(1)
    click.echo(f"\n✓ Created contact {contact.id}: {contact.display_name}")


@contacts.command('log')
@click.argument('contact_id')
@click.option('--type', 'activity_type', default='Email', show_default=True, help='Email, Phone Call, Meeting, ...')
@click.option('--notes', default='')
@click.option('--follow-up', 'follow_up_date', default='', help='Follow-up date (YYYY-MM-DD)')
@log_call
def contacts_log(contact_id, activity_type, notes, follow_up_date):
    """Log an outreach activity for a contact"""
    logger = logging.getLogger(LOGGER_NAME)
    with open_state(_repository()) as store:
        contact = _resolve_contact(store, contact_id)
        if contact is None:
            logger.warning(f"contacts_log | contact_id={contact_id} not found")
            click.echo(f"Contact {contact_id} not found.", err=True)
            sys.exit(1)
        crm.log_activity(store, contact.id, activity_type, notes, follow_up_date or None)
    click.echo(f"✓ Logged {activity_type} for {contact.display_name} (status: {contact.status})")


@contacts.command('status')
@click.argument('contact_id')
@click.argument('status', type=click.Choice(CONTACT_STATUSES))
@log_call
def contacts_status(contact_id, status):
    """Set a contact's status"""
    with open_state(_repository()) as store:
        contact = _resolve_contact(store, contact_id)
        if contact is None:
            click.echo(f"Contact {contact_id} not found.", err=True)
            sys.exit(1)
        crm.update_contact_status(store, contact.id, status)
    click.echo(f"✓ {contact.display_name} -> {status}")


@contacts.command('delete')
@click.argument('contact_id')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@log_call
def contacts_delete(contact_id, yes):
    """Delete a contact and its activities"""
    with open_state(_repository()) as store:
        contact = _resolve_contact(store, contact_id)
        if contact is None:
            click.echo(f"Contact {contact_id} not found.", err=True)
            sys.exit(1)
        if not yes and not click.confirm(f"Delete {contact.display_name or contact.id}?"):
            click.echo("Cancelled.")
            return
        crm.delete_contact(store, contact.id)
    click.echo(f"✓ Deleted {contact.display_name or contact.id}")


@contacts.command('bulk-status')
@click.argument('status', type=click.Choice(CONTACT_STATUSES))
@click.argument('contact_ids', nargs=-1, required=True)
@log_call
def contacts_bulk_status(status, contact_ids):
    """Set the status of several contacts"""
    with open_state(_repository()) as store:
        ids = [c.id for c in (_resolve_contact(store, cid) for cid in contact_ids) if c is not None]
        count = crm.bulk_update_status(store, ids, status)
    click.echo(f"✓ Status set to {status} for {count} contact(s)")


@contacts.command('tag')
@click.argument('tag_id')
@click.argument('contact_ids', nargs=-1, required=True)
@click.option('--remove', is_flag=True, help='Remove the tag instead of adding it')
@log_call
def contacts_tag(tag_id, contact_ids, remove):
    """Add (or remove) a tag on several contacts"""
    with open_state(_repository()) as store:
        ids = [c.id for c in (_resolve_contact(store, cid) for cid in contact_ids) if c is not None]
        if remove:
            count = crm.bulk_remove_tag(store, ids, tag_id)
        else:
            count = crm.bulk_add_tag(store, ids, tag_id)
    click.echo(f"✓ Tag {'removed from' if remove else 'added to'} {count} contact(s)")


# =============================================================================
# IMPORT COMMAND
# =============================================================================

@cli.command('import')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--lead-source', default=None, help=f"Lead source for imported rows (default: {config.DEFAULT_LEAD_SOURCE})")
@click.option('--yes', is_flag=True, help='Import without confirmation')
@log_call
def import_csv(csv_file, lead_source, yes):
    """Import contacts from a CSV file (preview, then confirm)"""
    logger = logging.getLogger(LOGGER_NAME)
    text = csv_file.read_text(encoding='utf-8-sig')

    with open_state(_repository(), save=False) as store:
        try:
            preview = prepare_import(text, store, lead_source=lead_source)
        except CSVImportError as e:
            logger.error(f"import_csv | {e}")
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    if preview.is_empty:
        click.echo(
            f"Error: no importable rows ({preview.skipped_unusable} without identifying fields, "
            f"{preview.skipped_duplicates} duplicates).",
            err=True,
        )
        sys.exit(1)

    click.echo("\nColumns: " + ", ".join(f"{h.label} -> {h.role.value}" for h in preview.headers))
    click.echo(f"\nPreview (first {min(PREVIEW_ROWS, preview.accepted_count)} of {preview.accepted_count}):\n")
    _print_contacts(preview.candidates[:PREVIEW_ROWS])
    click.echo(
        f"\n{preview.accepted_count} new, {preview.skipped_duplicates} duplicate(s), "
        f"{preview.skipped_unusable} unusable row(s)"
    )

    if not yes and not click.confirm("\nImport these contacts?"):
        click.echo("Import cancelled.")
        return

    with open_state(_repository()) as store:
        added = crm.confirm_import(store, preview.candidates)
    click.echo(f"\n✓ Imported {added} contact(s)")


# =============================================================================
# TASKS COMMANDS
# =============================================================================

@cli.group()
def tasks():
    """Manage follow-up tasks"""
    pass


@tasks.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include completed tasks')
@log_call
def tasks_list(show_all):
    """List open tasks (earliest due first)"""
    with open_state(_repository(), save=False) as store:
        rows = list(store.tasks) if show_all else crm.open_tasks(store)
        names = {c.id: c.display_name for c in store.contacts}

    if not rows:
        click.echo("No tasks found.")
        return

    click.echo(f"\n{'ID':<10} {'Title':<32} {'Due':<12} {'Priority':<9} {'Status':<10} {'Contact':<20}")
    click.echo("-" * 96)
    for t in rows:
        click.echo(
            f"{_short(t.id):<10} {_fit(t.title, 32):<32} {(t.due_date or '-')[:10]:<12} "
            f"{t.priority:<9} {t.status:<10} {_fit(names.get(t.contact_id, ''), 20):<20}"
        )


@tasks.command('add')
@click.argument('title')
@click.option('--contact', 'contact_id', default='', help='Contact id (or id prefix)')
@click.option('--due', 'due_date', default='', help='Due date (YYYY-MM-DD)')
@click.option('--priority', type=click.Choice(TASK_PRIORITIES), default='Medium', show_default=True)
@click.option('--project', default='')
@click.option('--notes', default='')
@log_call
def tasks_add(title, contact_id, due_date, priority, project, notes):
    """Create a task"""
    with open_state(_repository()) as store:
        contact = _resolve_contact(store, contact_id) if contact_id else None
        if contact_id and contact is None:
            click.echo(f"Contact {contact_id} not found.", err=True)
            sys.exit(1)
        task = crm.create_task(
            store, title,
            contact_id=contact.id if contact else None,
            due_date=due_date, priority=priority, project=project, notes=notes,
        )
        if task is None:
            click.echo("Error: task title is required.", err=True)
            sys.exit(1)
    click.echo(f"✓ Created task {_short(task.id)}: {task.title}")


def _set_task_status(task_id: str, status: str) -> None:
    with open_state(_repository()) as store:
        task = _resolve_task(store, task_id)
        if task is None:
            click.echo(f"Task {task_id} not found.", err=True)
            sys.exit(1)
        crm.set_task_status(store, task.id, status)
    click.echo(f"✓ Task {_short(task.id)} -> {status}")


@tasks.command('done')
@click.argument('task_id')
@log_call
def tasks_done(task_id):
    """Mark a task completed"""
    _set_task_status(task_id, TASK_COMPLETED)


@tasks.command('reopen')
@click.argument('task_id')
@log_call
def tasks_reopen(task_id):
    """Reopen a completed task"""
    _set_task_status(task_id, TASK_OPEN)


# =============================================================================
# PROJECTS COMMANDS
# =============================================================================

@cli.group()
def projects():
    """Manage outreach projects"""
    pass


@projects.command('list')
@log_call
def projects_list():
    """List projects with their contact counts"""
    with open_state(_repository(), save=False) as store:
        rows = list(store.projects)
        counts = {}
        for c in store.contacts:
            key = (c.project or '').strip().lower()
            counts[key] = counts.get(key, 0) + 1

    if not rows:
        click.echo("No projects found.")
        return

    click.echo(f"\n{'Name':<30} {'Status':<12} {'Owner':<18} {'Contacts':<8}")
    click.echo("-" * 72)
    for p in rows:
        click.echo(
            f"{_fit(p.name, 30):<30} {_fit(p.status, 12):<12} {_fit(p.owner, 18):<18} "
            f"{counts.get(p.name.strip().lower(), 0):<8}"
        )


@projects.command('add')
@click.argument('name')
@click.option('--status', default='', help='Project status (default: Active for new projects)')
@click.option('--owner', default='')
@click.option('--start', 'start_date', default='')
@click.option('--end', 'end_date', default='')
@click.option('--description', default='')
@log_call
def projects_add(name, status, owner, start_date, end_date, description):
    """Create or update a project"""
    with open_state(_repository()) as store:
        is_new = find_project_by_name(store.projects, name) is None
        project = upsert_project(store, {
            'name': name,
            'status': status or (DEFAULT_PROJECT_STATUS if is_new else ''),
            'owner': owner,
            'start_date': start_date,
            'end_date': end_date,
            'description': description,
        })
        if project is None:
            click.echo(f"Error: cannot save project '{name}'.", err=True)
            sys.exit(1)
    click.echo(f"✓ Saved project {project.name} ({project.status})")


# =============================================================================
# SETUP COMMANDS
# =============================================================================

@cli.command('init')
@log_call
def init():
    """Seed the default tags and outreach scripts"""
    with open_state(_repository()) as store:
        added = crm.ensure_defaults(store)
    if not any(added.values()):
        click.echo("Defaults already present.")
        return
    click.echo(f"✓ Added {added['tags']} tag(s) and {added['scripts']} script(s)")


@cli.command('scripts')
@click.argument('title', required=False)
@log_call
def scripts(title):
    """List outreach scripts, or print the one whose title starts with TITLE"""
    with open_state(_repository(), save=False) as store:
        rows = list(store.scripts)

    if not rows:
        click.echo("No scripts found. Run 'outreach init' to add the defaults.")
        return

    if title:
        matches = [s for s in rows if s.title.lower().startswith(title.lower())]
        if not matches:
            click.echo(f"Error: no script titled '{title}'.", err=True)
            sys.exit(1)
        script = matches[0]
        click.echo(f"\n{script.title} [{script.type}]")
        if script.subject:
            click.echo(f"Subject: {script.subject}")
        click.echo(f"\n{script.content}")
        return

    for s in rows:
        click.echo(f"  {_fit(s.type, 12):<12} {s.title}")


# =============================================================================
# DASHBOARD COMMANDS
# =============================================================================

@cli.command('stats')
@log_call
def stats():
    """Pipeline summary"""
    with open_state(_repository(), save=False) as store:
        summary = analytics.summary_stats(store)
        by_status = analytics.status_breakdown(store)
        by_category = analytics.category_distribution(store)

    click.echo(f"\nContacts:        {summary['total_contacts']}")
    click.echo(f"Response rate:   {summary['response_rate']}%")
    click.echo(f"Conversion rate: {summary['conversion_rate']}%")
    click.echo(f"Activities:      {summary['activities']}")
    click.echo(f"Open tasks:      {summary['open_tasks']}")
    click.echo(f"Projects:        {summary['projects']}")

    click.echo("\nBy status:")
    for row in by_status:
        click.echo(f"  {row['status']:<14} {row['count']:>5}  {row['percent']:>5}%")

    click.echo("\nBy category:")
    for row in by_category:
        click.echo(f"  {_fit(row['category'], 24):<24} {row['count']:>5}")


@cli.command('followups')
@click.option('--days', type=int, default=None, help=f"Window in days (default: {config.FOLLOW_UP_WINDOW_DAYS})")
@log_call
def followups(days):
    """Contacts with a follow-up due soon (overdue included)"""
    with open_state(_repository(), save=False) as store:
        due = analytics.follow_up_queue(store, days)

    if not due:
        click.echo("No follow-ups due.")
        return

    click.echo(f"\n{len(due)} follow-up(s) due:\n")
    for c in due:
        click.echo(f"  {(c.follow_up_date or '')[:10]:<12} {_fit(c.display_name, 30):<30} {c.status}")


# =============================================================================
# EXPORT COMMAND
# =============================================================================

@cli.command('export')
@click.argument('what', type=click.Choice(['contacts', 'activities']))
@click.option('--format', 'fmt', type=click.Choice(['csv', 'json']), default='csv', show_default=True)
@click.option('--out', 'out_file', type=click.Path(dir_okay=False, path_type=Path), help='Write to file instead of stdout')
@click.option('--status', default='', help='Only contacts with this status')
@click.option('--project', default='', help='Only contacts in this project')
@log_call
def export_data(what, fmt, out_file, status, project):
    """Export contacts or their activities"""
    with open_state(_repository(), save=False) as store:
        selected = filter_contacts(store.contacts, ContactFilter(status=status, project=project))
        if what == 'contacts':
            text = export.contacts_to_json(selected) if fmt == 'json' else export.contacts_to_csv(selected)
        else:
            if fmt == 'json':
                click.echo("Error: activities export supports csv only.", err=True)
                sys.exit(1)
            text = export.activities_to_csv(store, selected)

    if out_file:
        out_file.write_text(text + '\n', encoding='utf-8')
        click.echo(f"✓ Wrote {out_file}")
    else:
        click.echo(text)


# =============================================================================
# AI COMMAND
# =============================================================================

@cli.command('ask')
@click.argument('prompt')
@click.option('--mode', type=click.Choice(MODE_CHOICES), default='default', show_default=True,
              help="'research' lets the proxy search the web")
@log_call
def ask(prompt, mode):
    """Send a prompt to the AI proxy"""
    logger = logging.getLogger(LOGGER_NAME)
    try:
        click.echo(call_ai(prompt, mode=mode))
    except AIClientError as e:
        logger.error(f"ask | {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    cli()
