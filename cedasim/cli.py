"""Click CLI: loads config, picks a provider, drives one debate and renders it."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from cedasim.capabilities import build_capabilities
from cedasim.driver import DebateDriver
from cedasim.healthcheck import run_health_checks
from cedasim.models import SECTORS, SectorStatus, SimulationState
from cedasim.output import (
    print_analysis,
    print_event,
    print_evidence_board,
    print_issue,
    save_to_file,
)
from cedasim.phases import Phase
from cedasim.providers.base import AIProvider, ProviderError
from cedasim.providers.gemini import GeminiProvider
from cedasim.providers.openai_provider import OpenAIProvider
from cedasim.timeline import TimelineEvent, new_events, project_timeline

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

# Keyed by the ``sdk`` field of a model entry in settings.yaml.
PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the configured provider ``name``. Exits if it is unusable."""
    if name not in config.models:
        console.print(f"[bold red]Error:[/bold red] Unknown provider '{name}'. "
                      f"Configured: {', '.join(sorted(config.models))}")
        sys.exit(1)
    if name not in config.available_providers:
        console.print(f"[bold red]Error:[/bold red] No API key for '{name}'. "
                      f"Set {config.models[name].api_key_env} in .env.")
        sys.exit(1)
    model_cfg = config.models[name]
    if model_cfg.sdk not in PROVIDER_CLASSES:
        console.print(f"[bold red]Error:[/bold red] Unsupported sdk '{model_cfg.sdk}' for provider '{name}'.")
        sys.exit(1)
    try:
        return PROVIDER_CLASSES[model_cfg.sdk](model_cfg)
    except ProviderError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)


def _check_provider(provider: AIProvider) -> None:
    """Ping the provider; exit if it does not answer."""
    console.print("\n[bold]Checking provider...[/bold]")
    results = asyncio.run(run_health_checks({provider.name(): provider}))
    ok, err = results[provider.name()]
    if ok:
        console.print(f"  [green]OK  [/green] {provider.name()} ({provider.model_string()})\n")
        return
    short_err = escape(err.splitlines()[0][:120]) if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {provider.name()}: {short_err}")
    sys.exit(1)


class TimelineRenderer:
    """State listener that prints each newly appended timeline event once."""

    def __init__(self, driver: DebateDriver) -> None:
        self._driver = driver
        self._previous: tuple[TimelineEvent, ...] = ()
        self._printed: set[str] = set()
        self.step_ready = asyncio.Event()

    def __call__(self, state: SimulationState) -> None:
        gate = self._driver.gate
        current = project_timeline(state, step_ready=gate.step_ready, paused=gate.paused)
        for event in new_events(self._previous, current):
            # Placeholders come and go under the same id.
            if event.id in self._printed:
                continue
            print_event(event)
            self._printed.add(event.id)
        self._previous = current
        if gate.step_ready:
            self.step_ready.set()


async def _manual_stepper(driver: DebateDriver, renderer: TimelineRenderer) -> None:
    """Release each checkpoint when the user presses Enter."""
    while True:
        await renderer.step_ready.wait()
        renderer.step_ready.clear()
        if not driver.gate.pending:
            continue
        await asyncio.to_thread(console.input, "[dim]Press Enter to continue...[/dim]")
        driver.trigger_next()


async def _prompt(message: str) -> str:
    return await asyncio.to_thread(click.prompt, message, default="", show_default=False)


def _failed(state: SimulationState) -> bool:
    if state.status is Phase.ERROR:
        console.print(f"\n[bold red]Error:[/bold red] {escape(state.error or '')}")
        return True
    return False


async def _research_with_progress(driver: DebateDriver) -> None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        tasks = {sector: progress.add_task(f"{sector.value}: pending", total=None) for sector in SECTORS}

        def on_change(state: SimulationState) -> None:
            for sector, task_id in tasks.items():
                status = state.sector_statuses[sector]
                progress.update(task_id, description=f"{sector.value}: {status.value}")
                if status is SectorStatus.COMPLETED:
                    progress.update(task_id, total=1, completed=1)

        unsubscribe = driver.subscribe(on_change)
        try:
            await driver.start_research()
        finally:
            unsubscribe()


async def _run_simulation(
    driver: DebateDriver,
    topic: str,
    autoplay: bool,
    interactive: bool,
    follow_ups: tuple[str, ...],
) -> SimulationState:
    """Drive one run from framing to follow-ups. Returns the final state."""
    with console.status("Framing the debate issue..."):
        await driver.start(topic)
    if _failed(driver.state):
        return driver.state
    print_issue(driver.state.framed_issue)

    while interactive:
        change = await _prompt("Refine the issue (blank to confirm)")
        if not change.strip():
            break
        with console.status("Refining..."):
            await driver.refine(change)
        if _failed(driver.state):
            return driver.state
        console.print(f"[italic]{driver.state.framing_chat[-1].text}[/italic]")
        print_issue(driver.state.framed_issue)

    await _research_with_progress(driver)
    if _failed(driver.state):
        return driver.state
    print_evidence_board(driver.state)

    renderer = TimelineRenderer(driver)
    unsubscribe = driver.subscribe(renderer)
    driver.gate.set_autoplay(autoplay)
    stepper = None if autoplay else asyncio.create_task(_manual_stepper(driver, renderer))
    try:
        await driver.start_debate()
        if _failed(driver.state):
            return driver.state
        print_analysis(driver.state.analysis)

        questions = list(follow_ups)
        while True:
            if not questions and interactive:
                asked = await _prompt("Ask both sides a follow-up question (blank to finish)")
                if asked.strip():
                    questions.append(asked)
            if not questions:
                break
            await driver.follow_up(questions.pop(0))
            if _failed(driver.state):
                return driver.state
    finally:
        if stepper is not None:
            stepper.cancel()
        unsubscribe()
    return driver.state


@click.command()
@click.argument("topic")
@click.option("--language", default=None, help="Output language code, e.g. en, ko (default: from config)")
@click.option("--autoplay/--manual", default=None,
              help="Advance checkpoints automatically, or wait for Enter (default: from config)")
@click.option("--provider", "provider_name", default=None, help="Model provider from settings.yaml")
@click.option("--follow-up", "follow_ups", multiple=True, help="Question to ask both sides afterwards (repeatable)")
@click.option("--extra-research", is_flag=True, default=False,
              help="Run one targeted search per side before the rebuttals")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Do not write the markdown transcript")
@click.option("--interactive/--no-interactive", default=True,
              help="Prompt to refine the issue and for follow-up questions")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    topic: str,
    language: str | None,
    autoplay: bool | None,
    provider_name: str | None,
    follow_ups: tuple[str, ...],
    extra_research: bool,
    output_path: str | None,
    no_save: bool,
    interactive: bool,
    skip_health_check: bool,
    verbose: bool,
) -> None:
    """CEDA debate simulator -- two AI advocates argue TOPIC.

    \b
    Examples:
      cedasim "Should cities ban cars from downtown?"
      cedasim "Four-day work week" --language ko --manual
      cedasim "Universal basic income" --no-interactive --follow-up "What about inflation?"
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    effective_language = language or config.defaults.language
    effective_autoplay = config.defaults.autoplay if autoplay is None else autoplay
    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    provider = _build_provider(config, provider_name or config.defaults.provider)
    if not skip_health_check:
        _check_provider(provider)

    console.print(f"\n[bold cyan]CEDA Debate[/bold cyan] ({provider.model_string()}, language: {effective_language})")
    console.print(f"Topic: [italic]{topic[:80]}{'...' if len(topic) > 80 else ''}[/italic]\n")

    driver = DebateDriver(
        build_capabilities(provider, config, effective_language),
        pacing=config.pacing,
        supplementary_research=extra_research,
    )
    state = asyncio.run(
        _run_simulation(
            driver,
            topic=topic,
            autoplay=effective_autoplay,
            interactive=interactive,
            follow_ups=follow_ups,
        )
    )

    if not no_save and state.framed_issue is not None:
        saved_path = save_to_file(state, effective_output)
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")

    if state.status is Phase.ERROR:
        sys.exit(1)


if __name__ == "__main__":
    main()
