"""``flask quotes ...`` commands."""

import logging

import click
from flask.cli import with_appcontext

from quote_portal import db
from quote_portal.quotes.exports import render_csv
from quote_portal.quotes.service import export_quotes, parse_filters

log = logging.getLogger(__name__)


@click.group("quotes")
def quotes_cli() -> None:
    """Quote maintenance commands."""


@quotes_cli.command("export-csv")
@click.option("--state", default=None, help="Two-letter state code filter.")
@click.option("--roof-type", "roof_type", default=None, help="Roof type filter (exact).")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True),
              default=None, help="Write to this file instead of stdout.")
@with_appcontext
def export_csv(state: str | None, roof_type: str | None, output: str | None) -> None:
    """Export quotes matching the filters, same as /api/quotes/export/csv."""
    filters = parse_filters({"state": state, "roofType": roof_type})
    quotes = export_quotes(db.session, filters)
    content = render_csv(quotes)
    if output:
        with open(output, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        log.info("exported %d quotes to %s", len(quotes), output)
        click.echo(f"Exported {len(quotes)} quotes to {output}")
    else:
        click.echo(content, nl=False)
