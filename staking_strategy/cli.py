"""CLI and main logic."""

import argparse
import os
import sys

from staking_strategy.console import print_events, print_issues, print_status
from staking_strategy.constants import DEFAULT_TIMEOUT
from staking_strategy.errors import StrategyError
from staking_strategy.models import PauseDirection


def _add_connection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--rpc-url",
        default=None,
        help="Execution-layer RPC URL. Required if ETH_RPC_URL environment variable is not set.",
    )
    p.add_argument("--strategy", required=True, help="Address holding the strategy's funds.")
    p.add_argument(
        "--owner",
        required=True,
        help="Strategy owner address. Taken as given; it is not read from or verified on chain.",
    )
    p.add_argument("--asset", required=True, help="Wrapped asset held by the strategy.")
    p.add_argument("--staking", required=True, help="Staking vault (sUSDe) address.")
    p.add_argument("--wrapper", required=True, help="Wrap adapter address.")
    p.add_argument("--registry", required=True, help="Cluster (role) registry address.")
    p.add_argument("--block", default="latest", help="Block number or tag for reads. Default: latest.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Threshold-batched staking strategy with cooldown-aware redemptions.")
    sub = p.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show balances, redemption mode and gates of a deployed strategy.")
    _add_connection_args(status)

    threshold = sub.add_parser("set-threshold", help="Set the deposit threshold (owner only).")
    _add_connection_args(threshold)
    threshold.add_argument(
        "--caller",
        required=True,
        help="Address performing the change. Must match --owner; both come from the operator, "
        "so this guards against typos, not against unauthorized use.",
    )
    threshold.add_argument("amount", type=int, help="New threshold in raw token units.")

    pause = sub.add_parser("set-pause", help="Open or close a pause gate (owner or PAUSER_ROLE).")
    _add_connection_args(pause)
    pause.add_argument(
        "--caller",
        required=True,
        help="Address performing the change (--owner or a PAUSER_ROLE holder in the registry).",
    )
    pause.add_argument("direction", choices=[d.value for d in PauseDirection])
    pause.add_argument("value", choices=["on", "off"], help="'on' closes the gate, 'off' opens it.")

    simulate = sub.add_parser("simulate", help="Replay a JSON scenario against the in-memory environment.")
    simulate.add_argument("scenario", help="Path to the scenario JSON file.")
    simulate.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")

    sub.add_parser("clear-state", help="Remove persisted thresholds and pause gates.")
    return p.parse_args(argv)


def _connect(args: argparse.Namespace):
    """Connect to the RPC and build the strategy. Returns (strategy, token_symbol, token_decimals, block_timestamp) or None."""
    try:
        from web3 import Web3
    except ImportError as ex:  # pragma: no cover
        print("Missing dependency. Run: pip install -e .", file=sys.stderr)
        raise SystemExit(2) from ex

    from staking_strategy.contracts import Web3Token, connect_strategy
    from staking_strategy.state import apply_state, load_state

    rpc_url = args.rpc_url or os.getenv("ETH_RPC_URL")
    if not rpc_url:
        print(
            "Error: RPC URL is required. Provide --rpc-url or set ETH_RPC_URL environment variable.",
            file=sys.stderr,
        )
        return None

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": DEFAULT_TIMEOUT}))
    if not w3.is_connected():
        print(f"Error: failed to connect to RPC at {rpc_url}", file=sys.stderr)
        return None

    block = int(args.block) if str(args.block).isdigit() else args.block
    try:
        strategy = connect_strategy(
            w3,
            strategy=args.strategy,
            owner=args.owner,
            asset=args.asset,
            staking=args.staking,
            wrapper=args.wrapper,
            registry=args.registry,
            block_identifier=block,
        )
        token = Web3Token(w3, args.asset, block_identifier=block)
        symbol, decimals = token.symbol(), token.decimals()
    except (StrategyError, ValueError) as ex:
        print(f"Error: failed to set up strategy: {ex}", file=sys.stderr)
        return None

    timestamp = int(w3.eth.get_block(block)["timestamp"])
    apply_state(strategy, load_state(strategy.address))
    return strategy, symbol, decimals, timestamp


def _run_status(args: argparse.Namespace) -> int:
    connected = _connect(args)
    if connected is None:
        return 2
    strategy, symbol, decimals, now = connected
    try:
        status = strategy.status()
    except StrategyError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1
    print_status(status, symbol=symbol, decimals=decimals, now=now)
    return 0


def _run_admin(args: argparse.Namespace) -> int:
    from staking_strategy.state import save_state

    connected = _connect(args)
    if connected is None:
        return 2
    strategy, symbol, decimals, _ = connected
    try:
        if args.command == "set-threshold":
            strategy.set_deposit_threshold(args.caller, args.amount)
        else:
            strategy.set_pause(args.caller, args.direction, args.value == "on")
    except (StrategyError, ValueError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1

    path = save_state(strategy)
    print_events(strategy.events, symbol=symbol, decimals=decimals)
    print(f"✅ Saved strategy settings to {path}", file=sys.stderr)
    return 0


def _run_simulate(args: argparse.Namespace) -> int:
    from staking_strategy.scenario import ScenarioError, load_scenario, run_scenario

    try:
        scenario = load_scenario(args.scenario)
        result = run_scenario(scenario, progress=not args.no_progress)
    except (OSError, ValueError) as ex:
        kind = "invalid scenario" if isinstance(ex, ScenarioError) else "failed to load scenario"
        print(f"Error: {kind}: {ex}", file=sys.stderr)
        return 2

    decimals = int(scenario.get("decimals", 0))
    symbol = str(scenario.get("symbol", ""))
    print_events(result.events, symbol=symbol, decimals=decimals)
    print_status(result.status, symbol=symbol, decimals=decimals, now=result.timestamp)

    print_issues("Invariant warnings", result.issues)
    print_issues("Failed steps", (f"#{f.index} {f.op}: {f.message}" for f in result.failures))
    if not result.ok:
        return 1
    print(f"✅ {result.steps_run} steps replayed, all checks passed.", file=sys.stderr)
    return 0


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.command == "status":
        return _run_status(args)
    if args.command in ("set-threshold", "set-pause"):
        return _run_admin(args)
    if args.command == "simulate":
        return _run_simulate(args)

    from staking_strategy.state import clear_state

    clear_state()
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
