"""Interactive console menu for running the use cases."""

import asyncio
import os

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from agent_harness.config import HarnessConfig
from agent_harness.exceptions import ConfigurationError
from agent_harness.models.agents import ToolCall
from agent_harness.models.turns import TurnPolicy
from agent_harness.services.agent_service import AgentService, create_agent_service
from agent_harness.services.turns import TurnExecutor
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases import UseCase, UseCaseContext, all_use_cases
from agent_harness.use_cases.base import print_banner
from agent_harness.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)

RUN_ALL = "99"
EXIT = "0"


class HarnessMenu:
    """Numbered menu over the use cases; 99 runs them all and 0 exits."""

    def __init__(self, service: AgentService, config: HarnessConfig, console: Console | None = None):
        self.service = service
        self.config = config
        self.console = console or Console()
        self.use_cases = all_use_cases()

        executor = TurnExecutor(
            service,
            ToolDispatchRegistry(),
            # Scripted demos poll until the run ends; the resilience demo passes its own limits
            policy=TurnPolicy(poll_interval=config.poll_interval),
            on_tool_call=self._show_tool_call,
        )
        self.context = UseCaseContext(
            service=service,
            executor=executor,
            config=config,
            console=self.console,
            on_retry=self._show_retry,
        )

    async def run(self) -> None:
        """Show the menu until the user exits."""
        self.console.print(
            Panel.fit(
                f"[bold blue]Agent Harness[/bold blue]\n"
                f"Backend: {self.config.backend} | Model: {self.config.model_name}",
                border_style="blue",
            )
        )

        while True:
            self._show_menu()
            choice = (await asyncio.to_thread(Prompt.ask, "\n[bold cyan]Select a use case[/bold cyan]")).strip()

            if choice == EXIT:
                break
            if choice == RUN_ALL:
                for use_case in self.use_cases:
                    await self.run_use_case(use_case)
                continue

            use_case = next((uc for uc in self.use_cases if str(uc.number) == choice), None)
            if use_case is None:
                self.console.print(f"[red]Invalid choice: {choice}[/red]", highlight=False)
                continue
            await self.run_use_case(use_case)

        self.console.print("\n[yellow]Goodbye![/yellow]")

    async def run_use_case(self, use_case: UseCase) -> bool:
        """Run one use case, reporting any error instead of leaving the menu.

        Returns:
            True if the use case finished without raising
        """
        print_banner(self.console, use_case)
        try:
            await use_case.run(self.context)
            return True
        except Exception as e:
            logger.error(f"Use case {use_case.key} failed: {e}", exc_info=True)
            self.console.print(f"\n[Error in {use_case.title}]: {e}", style="bold red", markup=False)
            return False

    def _show_menu(self) -> None:
        table = Table(title="Use cases", show_header=False, box=None)
        table.add_column(justify="right", style="bold")
        table.add_column()
        for use_case in self.use_cases:
            table.add_row(str(use_case.number), use_case.title)
        table.add_row(RUN_ALL, "Run all use cases")
        table.add_row(EXIT, "Exit")
        self.console.print(table)

    def _show_tool_call(self, call: ToolCall) -> None:
        self.console.print(f"  [Tool call]: {call.name}({call.arguments})", style="magenta", markup=False)

    def _show_retry(self, attempt: int, max_attempts: int, error: BaseException, delay: float) -> None:
        self.console.print(
            f"  [Retry {attempt}/{max_attempts}]: {error}. Retrying in {delay:.1f}s...",
            style="yellow",
            markup=False,
        )


async def run_menu(config: HarnessConfig | None = None) -> None:
    config = config or HarnessConfig.from_env()
    service = create_agent_service(config)
    try:
        await HarnessMenu(service, config).run()
    finally:
        await service.close()


def main() -> None:
    """Console entry point."""
    # Log lines would interleave with the menu output, so only warnings and errors by default
    setup_logging(LogConfig(level=os.getenv("LOG_LEVEL", "WARNING")))
    try:
        asyncio.run(run_menu())
    except ConfigurationError as e:
        Console().print(f"[red]Configuration error:[/red] {e}", highlight=False)
        raise SystemExit(2) from e
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
