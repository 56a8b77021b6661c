"""Shared formatting and file utilities for commands."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from rich.console import Console
from rich.table import Table

from web3fund_toolkit.campaigns.models import CampaignRecord
from web3fund_toolkit.shared.errors import ClassifiedError
from web3fund_toolkit.transactions.models import TransactionPhase, TransactionState

# Shared console instance
console = Console()


def format_address(address: str, length: int = 10) -> str:
    """
    Format an Ethereum address to show first and last characters.

    Args:
        address: Ethereum address
        length: Total visible characters (default: 10)

    Returns:
        Formatted address like "0x1234...5678"
    """
    if not address:
        return "N/A"
    if len(address) <= length:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_amount(amount: str, symbol: str = "ETH") -> str:
    return f"{amount} {symbol}"


def format_error(error: ClassifiedError) -> str:
    """Rich markup for a classified error."""
    text = f"[red]{error.kind.value}[/red]: {error.message}"
    if error.field:
        text += f" [dim](field: {error.field})[/dim]"
    return text


def save_json_output(
    data: Dict[str, Any],
    filename: str,
    output_dir: str = "output",
    print_path: bool = True,
) -> str:
    """
    Save data to a JSON file with automatic directory creation.

    Args:
        data: Data to save
        filename: Output filename (can include subdirectories)
        output_dir: Base output directory (default: 'output')
        print_path: Whether to print the saved file path

    Returns:
        Full path to saved file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    filepath = output_path / filename

    with open(filepath, "w") as f:
        json.dump(data, f, indent=2)

    if print_path:
        console.print(f"[cyan]Data saved to:[/cyan] {filepath}")

    return str(filepath)


def generate_timestamped_filename(prefix: str, extension: str = "json") -> str:
    """Filename like "prefix_20240315_123456.json"."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"


def create_campaigns_table() -> Table:
    """
    Create a Rich table with standard campaign columns.

    Returns:
        Configured Rich Table for campaign display
    """
    table = Table(
        show_header=True,
        header_style="bold cyan",
        show_lines=False,
        pad_edge=False,
        box=None,
    )
    table.add_column("ID", width=4, justify="right")
    table.add_column("Title", width=28)
    table.add_column("Owner", width=14)
    table.add_column("Raised", width=14, justify="right")
    table.add_column("Goal", width=14, justify="right")
    table.add_column("%", width=6, justify="right")
    table.add_column("Milestone", width=10, justify="center")
    table.add_column("Status", width=10, justify="center")
    return table


def add_campaign_to_table(table: Table, campaign: CampaignRecord) -> None:
    """Add a campaign row to the campaigns table."""
    if not campaign.exists:
        status = "[dim]Deleted[/dim]"
    elif campaign.is_active:
        status = "[green]Active[/green]"
    else:
        status = "[yellow]Stopped[/yellow]"

    table.add_row(
        str(campaign.id),
        campaign.title[:28] or "-",
        format_address(campaign.owner),
        campaign.total_raised,
        campaign.goal_amount,
        f"{campaign.progress_percent:.1f}",
        f"{campaign.current_milestone_index}/{len(campaign.milestones)}",
        status,
    )


def print_campaign_details(campaign: CampaignRecord, image_url: str) -> None:
    if not campaign.exists:
        console.print(
            f"[yellow]Campaign #{campaign.id} does not exist[/yellow]"
        )
        return

    console.print(f"[bold]#{campaign.id} {campaign.title}[/bold]")
    console.print(campaign.description)
    console.print(f"Owner:  {campaign.owner}")
    console.print(f"Image:  {image_url}")
    console.print(
        f"Raised: {format_amount(campaign.total_raised)} of "
        f"{format_amount(campaign.goal_amount)} "
        f"({campaign.progress_percent:.2f}% funded)"
    )
    console.print(f"Status: {'Active' if campaign.is_active else 'Inactive'}")
    for milestone in campaign.milestone_progress():
        mark = "[green]reached[/green]" if milestone.reached else "[dim]pending[/dim]"
        console.print(
            f"  Milestone {milestone.index + 1}: "
            f"{format_amount(milestone.amount)} {mark}"
        )


def print_transaction_state(state: TransactionState) -> None:
    if state.handle is not None:
        console.print(f"Transaction: {state.handle.explorer_url}")

    if state.phase == TransactionPhase.CONFIRMED:
        block = state.outcome.inclusion.block_number if state.outcome else None
        console.print(f"[green]Confirmed[/green] in block {block}")
        if state.outcome is not None and not state.outcome.refreshed:
            console.print("[yellow]Confirmed, but the refreshed data could not be loaded[/yellow]")
    elif state.phase == TransactionPhase.FAILED and state.error is not None:
        console.print(format_error(state.error))
    else:
        console.print(f"State: {state.phase.value}")
