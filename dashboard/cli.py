# dashboard/cli.py
# Terminal front-end for the student dashboard.

import logging

import click

from dashboard.api_client import ApiError, WorkflowClient
from dashboard.chain import Web3PaymentGateway
from dashboard.config import DashboardConfig
from dashboard.flow import Phase
from dashboard.forms import CERTIFICATE_TYPES
from dashboard.session import NoticeBoard, StudentDashboard
from dashboard import views


def _print_table(rows, empty_message):
    if not rows:
        click.echo(empty_message)
        return
    columns = list(rows[0])
    widths = {c: max(len(c), *(len(str(r[c])) for r in rows)) for c in columns}
    click.echo("  ".join(c.ljust(widths[c]) for c in columns))
    click.echo("  ".join("-" * widths[c] for c in columns))
    for row in rows:
        click.echo("  ".join(str(row[c]).ljust(widths[c]) for c in columns))


def _echo_notice(notice):
    color = {"error": "red", "success": "green"}.get(notice.level)
    click.secho(notice.text, fg=color, err=notice.level == "error")


@click.group()
@click.option('--backend-url', default=DashboardConfig.BACKEND_URL, show_default=True)
@click.option('--wallet', envvar='DASHBOARD_WALLET', required=True, help='Wallet address used to log in.')
@click.option('--password', envvar='DASHBOARD_PASSWORD', required=True, help='Account password.')
@click.option('-v', '--verbose', is_flag=True, help='Log API and chain activity.')
@click.pass_context
def cli(ctx, backend_url, wallet, password, verbose):
    """Student dashboard for requesting and downloading certificates."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s: %(message)s')
    client = WorkflowClient(backend_url, timeout=DashboardConfig.REQUEST_TIMEOUT)
    try:
        user = client.login(wallet, password)
    except ApiError as e:
        raise click.ClickException(e.message)
    if user.get("userType") != "student":
        raise click.ClickException("The dashboard is only available to student accounts.")
    ctx.obj = {"client": client, "user": user}


def _dashboard(ctx, with_wallet=False):
    gateway = Web3PaymentGateway.from_config(DashboardConfig) if with_wallet else None
    notices = NoticeBoard(ttl=DashboardConfig.NOTICE_TTL_SECONDS, listener=_echo_notice)
    dashboard = StudentDashboard(ctx.obj["user"], ctx.obj["client"], gateway=gateway, notices=notices)
    ctx.call_on_close(dashboard.fees.shutdown)
    return dashboard


@cli.command()
@click.pass_context
def organizations(ctx):
    """List the organizations a certificate can be requested from."""
    dashboard = _dashboard(ctx)
    rows = [{"ID": o["_id"], "Name": o["name"], "Wallet": views.short_address(o["walletAddress"])}
            for o in dashboard.fetch_organizations()]
    _print_table(rows, "No organizations are registered yet.")


@cli.command()
@click.option('--search', default='', help='Only show requests matching this text.')
@click.pass_context
def requests(ctx, search):
    """Show my certificate requests."""
    dashboard = _dashboard(ctx)
    dashboard.switch_tab("requests")
    dashboard.search_term = search
    _print_table(dashboard.request_rows(), "You have not made any certificate requests yet.")


@cli.command()
@click.pass_context
def certificates(ctx):
    """Show the certificates I have received."""
    dashboard = _dashboard(ctx)
    dashboard.switch_tab("certificates")
    _print_table(dashboard.certificate_rows(), "You have not received any certificates yet.")


@cli.command()
@click.option('--org', 'organization_id', required=True, help='Organization ID (see `organizations`).')
@click.option('--usn', required=True, help='University seat number.')
@click.option('--year', 'year_of_graduation', required=True, help='Year of graduation.')
@click.option('--type', 'certificate_type', required=True, type=click.Choice(CERTIFICATE_TYPES))
@click.pass_context
def request(ctx, organization_id, usn, year_of_graduation, certificate_type):
    """Pay the organization's issuance fee and submit a certificate request."""
    dashboard = _dashboard(ctx, with_wallet=True)
    dashboard.fetch_organizations()
    dashboard.switch_tab("request")
    dashboard.select_organization(organization_id)

    state = dashboard.request_certificate(usn, year_of_graduation, certificate_type)
    if state.phase is not Phase.SUCCESS:
        ctx.exit(1)


if __name__ == '__main__':
    cli()
