#!/usr/bin/env python3
"""
Unified CLI for the Web3Fund toolkit.

The wallet is configured through WEB3FUND_RPC_URL, WEB3FUND_PRIVATE_KEY and
WEB3FUND_CONTRACT_ADDRESS (a .env file is read on startup).

Examples:
  - Session
    web3fund network
    web3fund switch-network --chain-id 11155111

  - Campaigns
    web3fund campaigns-list [--search water] [--json]
    web3fund campaigns-mine
    web3fund campaign-show --id 3 [--check-image]

  - Transactions
    web3fund create --title "Clean water" --description "..." --goal 10 --milestones "2,5,10"
    web3fund donate --id 3 --amount 0.5
    web3fund withdraw --id 3 | stop --id 3 | delete --id 3

  - Admin
    web3fund admin-status
    web3fund admin-delete --id 3
    web3fund change-admin --address 0x...

  - Logging
    web3fund --log-level DEBUG campaigns-list
"""

import argparse
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from web3fund_toolkit.campaigns.service import CampaignService
from web3fund_toolkit.contracts.gateway import ContractGateway
from web3fund_toolkit.shared.exceptions import CampaignLoadError
from web3fund_toolkit.shared.logging import set_log_level
from web3fund_toolkit.shared.network import get_network_name
from web3fund_toolkit.shared.results import Result
from web3fund_toolkit.shared.services.content_service import content_service
from web3fund_toolkit.shared.services.http_client import aclose_async_client
from web3fund_toolkit.transactions.models import ActionKind
from web3fund_toolkit.transactions.orchestrator import TransactionOrchestrator
from web3fund_toolkit.utils.formatters import (
    add_campaign_to_table,
    console,
    create_campaigns_table,
    format_error,
    generate_timestamped_filename,
    print_campaign_details,
    print_transaction_state,
    save_json_output,
)
from web3fund_toolkit.wallet.connection import ConnectionManager
from web3fund_toolkit.wallet.provider import KeyWalletProvider


@dataclass
class Session:
    connection: ConnectionManager
    gateway: ContractGateway
    reader: CampaignService
    orchestrator: TransactionOrchestrator


async def _open_session() -> Session:
    connection = ConnectionManager(KeyWalletProvider())
    state = await connection.connect()
    if not state.is_connected:
        raise ValueError(format_error(state.error) if state.error else "Not connected")

    gateway = ContractGateway.from_provider(connection.provider)
    reader = CampaignService(gateway)
    return Session(
        connection=connection,
        gateway=gateway,
        reader=reader,
        orchestrator=TransactionOrchestrator(connection, gateway, reader),
    )


def _report_skipped(result: Result) -> List[Dict[str, Any]]:
    """Print campaigns that could not be loaded; return them for JSON output."""
    if not result.has_warnings():
        return []
    messages = result.get_error_messages()
    console.print(f"[yellow]{len(messages)} campaign(s) could not be loaded[/yellow]")
    for message in messages:
        console.print(f"  [yellow]- {message}[/yellow]")
    return [e.to_dict() for e in result.errors]


def _print_campaigns(
    campaigns,
    args: argparse.Namespace,
    prefix: str,
    skipped: Optional[List[Dict[str, Any]]] = None,
) -> None:
    if args.json:
        filename = args.output or generate_timestamped_filename(prefix)
        data: Dict[str, Any] = {"campaigns": [c.to_dict() for c in campaigns]}
        if skipped:
            data["skipped"] = skipped
        save_json_output(data, filename)
        return

    table = create_campaigns_table()
    for campaign in campaigns:
        add_campaign_to_table(table, campaign)
    console.print(table)


def cmd_network(args: argparse.Namespace) -> None:
    async def run():
        session = await _open_session()
        network = session.connection.network
        console.print(f"Account: {session.connection.account}")
        console.print(
            f"Network: {get_network_name(network.chain_id)} "
            f"({network.chain_id})"
        )
        if network.supported:
            console.print(f"[green]Supported[/green] ({network.label})")
        else:
            console.print(f"[red]{network.label}[/red]")
        await session.connection.disconnect()

    asyncio.run(run())


def cmd_switch_network(args: argparse.Namespace) -> None:
    async def run():
        session = await _open_session()
        switched = await session.connection.switch_network(args.chain_id)
        network = session.connection.network
        if switched:
            console.print(f"Switched to {get_network_name(network.chain_id)}")
        else:
            console.print(
                f"[yellow]Still on {get_network_name(network.chain_id)}[/yellow]"
            )
        await session.connection.disconnect()

    asyncio.run(run())


def cmd_campaigns_list(args: argparse.Namespace) -> None:
    async def run():
        session = await _open_session()
        result = await session.reader.load_all_with_report()
        campaigns = result.data or []
        if args.search:
            campaigns = CampaignService.search(campaigns, args.search)

        console.print(f"Active campaigns: {len(campaigns)}")
        skipped = _report_skipped(result)
        _print_campaigns(campaigns, args, "campaigns", skipped)

    asyncio.run(run())


def cmd_campaigns_mine(args: argparse.Namespace) -> None:
    async def run():
        session = await _open_session()
        result = await session.reader.load_for_account_with_report(
            session.connection.account
        )
        campaigns = result.data or []
        console.print(f"Your campaigns: {len(campaigns)}")
        skipped = _report_skipped(result)
        _print_campaigns(campaigns, args, "my_campaigns", skipped)

    asyncio.run(run())


def cmd_campaign_show(args: argparse.Namespace) -> None:
    async def run():
        session = await _open_session()
        campaign = await session.reader.load_campaign(args.id)
        if args.check_image:
            image_url = await content_service.resolve(campaign.image_ref)
            await aclose_async_client()
        else:
            image_url = content_service.image_url(campaign.image_ref)

        if args.json:
            filename = args.output or f"campaign_{args.id}.json"
            save_json_output(
                {"campaign": campaign.to_dict(), "image_url": image_url}, filename
            )
            return
        print_campaign_details(campaign, image_url)

    asyncio.run(run())


def cmd_admin_status(args: argparse.Namespace) -> None:
    async def run():
        session = await _open_session()
        admin = await session.gateway.get_admin()
        is_admin = await session.reader.is_admin(session.connection.account)
        console.print(f"Current admin: {admin}")
        if is_admin:
            console.print("[green]You are the admin[/green]")
        else:
            console.print("[red]You are not the admin[/red]")
        if is_admin:
            _print_campaigns(await session.reader.load_admin_view(), args, "admin")

    asyncio.run(run())


def _run_action(action: ActionKind, params: Dict[str, Any]) -> None:
    async def run():
        session = await _open_session()
        console.print(f"Submitting {action.value}...")
        state = await session.orchestrator.submit(action, params)
        print_transaction_state(state)

    asyncio.run(run())


def cmd_create(args: argparse.Namespace) -> None:
    _run_action(
        ActionKind.CREATE_CAMPAIGN,
        {
            "title": args.title,
            "description": args.description,
            "image_ref": args.image_ref,
            "goal": args.goal,
            "milestones": args.milestones,
        },
    )


def cmd_donate(args: argparse.Namespace) -> None:
    _run_action(ActionKind.DONATE, {"campaign_id": args.id, "amount": args.amount})


def cmd_change_admin(args: argparse.Namespace) -> None:
    _run_action(ActionKind.CHANGE_ADMIN, {"new_admin": args.address})


def _campaign_command(action: ActionKind):
    def handler(args: argparse.Namespace) -> None:
        _run_action(action, {"campaign_id": args.id})

    return handler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="web3fund",
        description="Unified CLI for the Web3Fund toolkit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Override WEB3FUND_LOG_LEVEL",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # network
    p_net = sub.add_parser("network", help="Show account and network status")
    p_net.set_defaults(func=cmd_network)

    # switch-network
    p_sw = sub.add_parser("switch-network", help="Ask the wallet to switch chain")
    p_sw.add_argument("--chain-id", type=int, required=True)
    p_sw.set_defaults(func=cmd_switch_network)

    # campaigns-list
    p_cl = sub.add_parser("campaigns-list", help="List active campaigns")
    p_cl.add_argument("--search", type=str, help="Filter by title/description")
    p_cl.add_argument("--json", action="store_true", help="Output JSON")
    p_cl.add_argument("--output", type=str, help="Output filename")
    p_cl.set_defaults(func=cmd_campaigns_list)

    # campaigns-mine
    p_cm = sub.add_parser("campaigns-mine", help="List your campaigns")
    p_cm.add_argument("--json", action="store_true", help="Output JSON")
    p_cm.add_argument("--output", type=str, help="Output filename")
    p_cm.set_defaults(func=cmd_campaigns_mine)

    # campaign-show
    p_cs = sub.add_parser("campaign-show", help="Show one campaign")
    p_cs.add_argument("--id", type=int, required=True)
    p_cs.add_argument(
        "--check-image",
        action="store_true",
        help="Check that the campaign image is reachable",
    )
    p_cs.add_argument("--json", action="store_true", help="Output JSON")
    p_cs.add_argument("--output", type=str, help="Output filename")
    p_cs.set_defaults(func=cmd_campaign_show)

    # admin-status
    p_as = sub.add_parser("admin-status", help="Check admin role")
    p_as.add_argument("--json", action="store_true", help="Output JSON")
    p_as.add_argument("--output", type=str, help="Output filename")
    p_as.set_defaults(func=cmd_admin_status)

    # create
    p_cr = sub.add_parser("create", help="Create a campaign")
    p_cr.add_argument("--title", type=str, required=True)
    p_cr.add_argument("--description", type=str, required=True)
    p_cr.add_argument("--image-ref", type=str, default="", help="IPFS hash")
    p_cr.add_argument("--goal", type=str, required=True, help="Goal in ETH")
    p_cr.add_argument(
        "--milestones",
        type=str,
        required=True,
        help="Comma separated ETH thresholds, e.g. 2,5,10",
    )
    p_cr.set_defaults(func=cmd_create)

    # donate
    p_do = sub.add_parser("donate", help="Donate to a campaign")
    p_do.add_argument("--id", type=int, required=True)
    p_do.add_argument("--amount", type=str, required=True, help="Amount in ETH")
    p_do.set_defaults(func=cmd_donate)

    # owner / admin campaign actions
    for name, action, help_text in (
        ("withdraw", ActionKind.WITHDRAW_FUNDS, "Withdraw funds (owner)"),
        ("stop", ActionKind.STOP_CAMPAIGN, "Stop a campaign (owner)"),
        ("delete", ActionKind.DELETE_CAMPAIGN, "Delete a campaign (owner)"),
        ("admin-delete", ActionKind.ADMIN_DELETE_CAMPAIGN, "Delete any campaign (admin)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--id", type=int, required=True)
        p.set_defaults(func=_campaign_command(action))

    # change-admin
    p_ca = sub.add_parser("change-admin", help="Transfer the admin role")
    p_ca.add_argument("--address", type=str, required=True)
    p_ca.set_defaults(func=cmd_change_admin)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)
    try:
        args.func(args)
    except CampaignLoadError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise SystemExit(1)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise


if __name__ == "__main__":
    main()
