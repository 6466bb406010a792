"""
Nugget Launch - CLI Entry Point.

Usage:
    nugget-launch simulate           Run a simulated launch end to end
    nugget-launch settings           Show resolved settings
    nugget-launch --help             Show help
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="nugget-launch",
    help="Nugget launch and onboarding orchestrator.",
    add_completion=False,
)
console = Console()


async def _simulate(
    script,
    flags,
    dismiss: bool,
    activate: int,
) -> None:
    from nugget_launch.config import get_settings
    from nugget_launch.models import OnboardingDecision
    from nugget_launch.orchestrator import LaunchOrchestrator
    from nugget_launch.signals import CONTENT_CHANGED
    from nugget_launch.simulation import SimulatedAuth, SimulatedBackend

    backend = SimulatedBackend(script)
    auth = SimulatedAuth(authenticated=False)
    orchestrator = LaunchOrchestrator(
        preferences=backend,
        content=backend,
        pending_shares=backend,
        notifications=backend,
        flags=flags,
        settings=get_settings(),
    )

    orchestrator.store.subscribe(
        lambda state: console.print(
            f"  [dim]gen {state.generation}[/dim] phase=[bold]{state.phase.value}[/bold] "
            f"onboarding={state.decision.value}"
        )
    )
    orchestrator.signals.subscribe(
        CONTENT_CHANGED, lambda _: console.print("  [green]↻ content changed[/green]")
    )

    orchestrator.bind(auth)
    console.print("\n[bold]Signing in[/bold]")
    auth.set(True)
    await orchestrator.wait_idle()

    if dismiss:
        decision = orchestrator.state.decision
        while decision != OnboardingDecision.NONE:
            console.print(f"\n[bold]Dismissing {decision.value}[/bold]")
            decision = orchestrator.on_screen_dismissed(decision)
            if decision != OnboardingDecision.NONE:
                await asyncio.sleep(orchestrator.settings.screen_chain_delay_seconds + 0.05)

    for _ in range(activate):
        console.print("\n[bold]App became active[/bold]")
        outcome = await orchestrator.on_app_activated()
        console.print(f"  badge reset={outcome.badge_reset} flushed={outcome.flushed}")

    state = orchestrator.state
    table = Table(title="Final launch state")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("generation", str(state.generation))
    table.add_row("phase", state.phase.value)
    table.add_row("onboarding", state.decision.value)
    prefs = state.preferences
    table.add_row("preferences", prefs.model_dump_json() if prefs is not None else "-")
    table.add_row("push registered", str(backend.registered))
    console.print()
    console.print(table)


@app.command()
def simulate(
    fail_preferences: bool = typer.Option(False, "--fail-preferences", help="Make the preferences fetch fail"),
    fail_content: bool = typer.Option(False, "--fail-content", help="Make the content warm-up fail"),
    seen_tutorial: bool = typer.Option(False, "--seen-tutorial", help="Start with the tutorial already seen"),
    beta: bool = typer.Option(False, "--beta", help="User is eligible for the beta welcome"),
    pending_shares: int = typer.Option(0, "--pending-shares", "-p", help="Shares queued by the share extension"),
    deny_push: bool = typer.Option(False, "--deny-push", help="Refuse notification permission"),
    dismiss: bool = typer.Option(False, "--dismiss", "-d", help="Dismiss onboarding screens as they appear"),
    activate: int = typer.Option(0, "--activate", "-a", help="Foreground activations after launch"),
    latency: float = typer.Option(0.05, "--latency", help="Simulated service latency in seconds"),
    flags_file: Optional[Path] = typer.Option(
        None, "--flags-file", help="Persist onboarding flags to this JSON file (kept across runs)"
    ),
    persist: bool = typer.Option(False, "--persist", help="Persist onboarding flags to the configured flags_path"),
    reset_flags: bool = typer.Option(False, "--reset-flags", help="Clear persisted flags before the run"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Log level for launch internals (default: NUGGET_LOG_LEVEL)"
    ),
) -> None:
    """
    Run a simulated launch: sign in, prefetch, onboarding, resync.

    With --flags-file or --persist, flags written by earlier runs (such as
    a dismissed tutorial) carry over, the way they would on a device.
    --seen-tutorial and --beta only ever set flags; use --reset-flags to
    start from a clean slate.
    """
    from nugget_launch.config import get_settings
    from nugget_launch.logging_setup import configure_logging
    from nugget_launch.models import FLAG_NAMES, PersistedFlags
    from nugget_launch.simulation import SimulationScript
    from nugget_launch.stores import InMemoryFlagStore, JsonFlagStore

    configure_logging((log_level or get_settings().log_level).upper(), console=console)

    script = SimulationScript(
        latency_seconds=latency,
        fail_preferences=fail_preferences,
        fail_content=fail_content,
        pending_shares=pending_shares,
        grant_notifications=not deny_push,
    )

    if flags_file is None and persist:
        flags_file = get_settings().flags_path

    if flags_file is not None:
        flags = JsonFlagStore(flags_file)
        if reset_flags:
            for name in FLAG_NAMES:
                flags.reset(name)
        if seen_tutorial:
            flags.mark_seen("has_seen_tutorial")
        if beta:
            flags.mark_seen("beta_welcome_eligible")
    else:
        flags = InMemoryFlagStore(
            PersistedFlags(has_seen_tutorial=seen_tutorial, beta_welcome_eligible=beta)
        )
    asyncio.run(_simulate(script, flags, dismiss=dismiss, activate=activate))


@app.command("settings")
def show_settings() -> None:
    """Show resolved settings."""
    from nugget_launch.config import get_settings

    try:
        resolved = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Launch settings")
    table.add_column("Setting")
    table.add_column("Value")
    for name, value in resolved.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from nugget_launch import __version__

    console.print(f"Nugget Launch version {__version__}")


if __name__ == "__main__":
    app()
