"""
Report CLI Commands - Inspect budgets stored in the document database.

Provides command-line interface for:
- Loading inputs, compositions and budgets from a JSON export
- Budget totals
- ABC curves of line items or of consumed inputs
- Physical-financial schedule and baseline comparison
- Measurement progress
- Composition catalog search
"""
from typing import Optional
import json
import logging

import click
from sqlalchemy.orm import sessionmaker

from orcapro.config import get_config
from orcapro.domain.exceptions import DomainError
from orcapro.domain.services import abc_classifier, measurement_tracker, schedule_allocator
from orcapro.infrastructure.repositories import (
    BudgetRepository,
    CompositionRepository,
    InputRepository,
)
from orcapro.infrastructure.serialization import (
    budget_from_document,
    composition_from_document,
    input_from_document,
    template_from_document,
)
from orcapro.models import init_db, make_engine
from orcapro.modules.reports import (
    abc_frame,
    abc_summary_rows,
    money_to_display,
    progress_rows,
    schedule_frame,
)

logger = logging.getLogger(__name__)


class Context:
    """Session and repositories shared by the commands of one invocation."""

    def __init__(self, database_url: str):
        engine = make_engine(database_url)
        init_db(engine)
        self.session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
        self.inputs = InputRepository(self.session)
        self.compositions = CompositionRepository(self.session, self.inputs.resolve)
        self.budgets = BudgetRepository(self.session)

    def close(self):
        self.session.close()


def _budget(ctx: Context, budget_id: str):
    try:
        return ctx.budgets.get(budget_id)
    except DomainError as e:
        raise click.ClickException(e.message)


def _pct(value) -> str:
    return f"{float(value):.2f}%"


@click.group()
@click.version_option(version=get_config().version)
@click.option('--database', default=None, help='SQLAlchemy URL (defaults to database.url from config)')
@click.option('--log-level', default=None, help='Logging level (defaults to logging.level from config)')
@click.pass_context
def cli(click_ctx, database: Optional[str], log_level: Optional[str]):
    """OrcaPro budget engine CLI.

    Budgets, compositions and inputs are read from the configured
    document database.
    """
    config = get_config()
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    ctx = Context(database or config.database_url)
    click_ctx.obj = ctx
    click_ctx.call_on_close(ctx.close)


@cli.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def load(ctx: Context, path: str):
    """Load inputs, compositions, templates and budgets from a JSON export."""
    with open(path, encoding='utf-8') as f:
        data = json.load(f)

    counts = {'inputs': 0, 'compositions': 0, 'templates': 0, 'budgets': 0}
    try:
        for doc in data.get('inputs', []):
            ctx.inputs.create(input_from_document(doc))
            counts['inputs'] += 1
        # Nested compositions must be stored before the ones using them
        for doc in data.get('compositions', []):
            ctx.compositions.create(composition_from_document(doc))
            counts['compositions'] += 1
        for doc in data.get('templates', []):
            ctx.budgets.create_template(template_from_document(doc))
            counts['templates'] += 1
        for doc in data.get('budgets', []):
            ctx.budgets.save(budget_from_document(doc))
            counts['budgets'] += 1
        ctx.budgets.commit()
    except (KeyError, ValueError, DomainError) as e:
        ctx.budgets.rollback()
        raise click.ClickException(f"Could not load {path}: {e}")

    click.echo(click.style(f"✓ Loaded {path}", fg='green'))
    for name, count in counts.items():
        click.echo(f"  {name}: {count}")


@cli.command(name='list')
@click.option('--client', 'client_id', default=None, help='Only budgets of this client')
@click.pass_obj
def list_budgets(ctx: Context, client_id: Optional[str]):
    """List stored budgets."""
    budgets = ctx.budgets.find_by_client_id(client_id) if client_id else ctx.budgets.find_all()
    if not budgets:
        click.echo("No budgets found")
        return
    for budget in budgets:
        click.echo(
            f"{budget.id}  {budget.client_id:<20} {budget.status.value:<9} "
            f"{money_to_display(budget.total):>18}  ({len(budget.items)} items)"
        )


@cli.command()
@click.argument('budget_id')
@click.pass_obj
def totals(ctx: Context, budget_id: str):
    """Show the totals of a budget."""
    budget = _budget(ctx, budget_id)
    click.echo(f"\nBudget: {budget.id} (client {budget.client_id}, {budget.status.value})")
    click.echo(f"  Subtotal:       {money_to_display(budget.subtotal):>18}")
    click.echo(f"  Discount:       {money_to_display(budget.total_discount):>18}")
    click.echo(f"  Tax:            {money_to_display(budget.total_tax):>18}")
    click.echo(f"  BDI ({float(budget.bdi_pct):g}%):  {money_to_display(budget.totals.bdi_amount):>18}")
    click.echo(click.style(f"  Total:          {money_to_display(budget.total):>18}", bold=True))


@cli.command()
@click.argument('budget_id')
@click.option('--by', 'mode', type=click.Choice(['items', 'inputs']), default='items',
              help='Rank line items or the inputs they consume')
@click.pass_obj
def abc(ctx: Context, budget_id: str, mode: str):
    """Show the ABC curve of a budget."""
    budget = _budget(ctx, budget_id)

    if mode == 'inputs':
        try:
            result = abc_classifier.classify_budget_inputs(
                budget, ctx.inputs.resolve, ctx.compositions.resolve
            )
        except DomainError as e:
            raise click.ClickException(e.message)
        entries = list(result.entries)
        for warning in result.warnings:
            click.echo(click.style(f"  ! {warning}", fg='yellow'))
    else:
        entries = abc_classifier.classify_budget_items(budget)

    if not entries:
        click.echo("Nothing to classify (budget total is zero)")
        return

    frame = abc_frame(entries)
    colors = {'A': 'red', 'B': 'yellow', 'C': 'green'}
    for _, row in frame.iterrows():
        click.echo(
            click.style(f"  {row['abc_class']}", fg=colors[row['abc_class']])
            + f"  {row['label'][:40]:<40} {money_to_display(row['value']):>18}"
            f"  {row['percentage']:6.2f}%  {row['cumulative_percentage']:6.2f}%"
        )

    click.echo("")
    for row in abc_summary_rows(entries):
        click.echo(f"  Class {row['class']}: {row['count']} item(s), {row['value']} ({row['percentage']})")


@cli.command()
@click.argument('budget_id')
@click.option('--baseline', is_flag=True, help='Compare the live plan with the saved baseline')
@click.pass_obj
def schedule(ctx: Context, budget_id: str, baseline: bool):
    """Show the physical-financial schedule of a budget."""
    budget = _budget(ctx, budget_id)
    if not budget.schedule_periods:
        click.echo("Budget has no schedule periods")
        return

    if baseline:
        for row in schedule_allocator.compare_with_baseline(budget):
            click.echo(
                f"  {row.period.name:<12} planned {money_to_display(row.planned_total):>16}"
                f"  baseline {money_to_display(row.baseline_total):>16}"
                f"  variance {money_to_display(row.variance):>16}"
            )
        return

    click.echo(schedule_frame(budget).to_string())

    summary = schedule_allocator.build_schedule(budget)
    for validation in summary.validations:
        if not validation.is_valid:
            click.echo(click.style(
                f"  ! Stage {validation.stage} allocated {_pct(validation.total_percentage)}"
                f" (missing {_pct(validation.missing_percentage)})",
                fg='yellow',
            ))


@cli.command()
@click.argument('budget_id')
@click.pass_obj
def progress(ctx: Context, budget_id: str):
    """Show measurement progress of a budget."""
    budget = _budget(ctx, budget_id)
    result = measurement_tracker.aggregate_progress(budget)

    for row in progress_rows(budget):
        click.echo(f"  {row['date']}  {row['measurement']:<20} {row['value']:>18}")

    click.echo(f"\nPhysical progress:  {_pct(result.physical_progress_pct)}")
    click.echo(f"Financial progress: {_pct(result.financial_progress_pct)}")


@cli.command()
@click.argument('query', required=False, default='')
@click.option('--limit', type=int, default=50, help='Maximum compositions to show')
@click.pass_obj
def compositions(ctx: Context, query: str, limit: int):
    """Search the composition catalog by code or name."""
    found = ctx.compositions.search(query, limit=limit)
    if not found:
        click.echo("No compositions found")
        return
    for composition in found:
        line = (
            f"  {composition.code:<12} {composition.name[:40]:<40} {composition.unit:<4}"
            f" {money_to_display(composition.total_with_bdi):>16}"
        )
        if composition.cost.has_warnings:
            line += click.style(f"  ({len(composition.cost.warnings)} missing reference(s))", fg='yellow')
        click.echo(line)
