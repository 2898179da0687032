#!/usr/bin/env python3
"""Interactive chat CLI for talking to the use case agents over HTTP."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

DEFAULT_BASE_URL = "http://localhost:8000"


class ChatCLI:
    """Interactive chat interface for the agent harness service."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, use_case: str = "basic"):
        self.base_url = base_url
        self.use_case = use_case
        self.session_id: str | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Agent Harness - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the selected agent.\n"
                "Commands: /help, /use <key>, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]Connected to the agent harness service[/green]\n")
        self._show_use_cases()

        try:
            while True:
                user_input = Prompt.ask(f"\n[bold cyan]You ({self.use_case})[/bold cyan]").strip()
                command = user_input.lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/clear":
                    self._end_session()
                    self.console.print("[yellow]Session cleared[/yellow]")
                    continue
                elif command.startswith("/use"):
                    self._switch_use_case(user_input[len("/use") :].strip())
                    continue
                elif user_input == "":
                    continue

                response = self._send_message(user_input)
                if response:
                    self._display_response(response)

        except KeyboardInterrupt:
            pass
        finally:
            self._end_session()
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _send_message(self, message: str) -> dict | None:
        """Send one message; the first message of a session creates it."""
        payload = {"message": message, "use_case": self.use_case}
        if self.session_id:
            payload["session_id"] = self.session_id

        try:
            with self.console.status("[dim]Thinking...[/dim]"):
                response = self.client.post(f"{self.base_url}/conversation", json=payload)
        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]", highlight=False)
            return None

        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]", highlight=False)
            return None

        data = response.json()
        self.session_id = data.get("session_id")
        return data

    def _end_session(self) -> None:
        """Delete the current session so the service releases its conversation."""
        if self.session_id is None:
            return
        try:
            self.client.delete(f"{self.base_url}/conversation/{self.session_id}")
        except httpx.HTTPError as e:
            self.console.print(f"[dim]Could not end session {self.session_id}: {e}[/dim]", highlight=False)
        self.session_id = None

    def _switch_use_case(self, key: str) -> None:
        use_cases = self._fetch_use_cases()
        match = next((uc for uc in use_cases if key in (uc["key"], str(uc["number"]))), None)
        if match is None:
            self.console.print(f"[red]Unknown use case: {key}[/red]", highlight=False)
            return
        if not match["chat"]:
            self.console.print(f"[red]Use case '{match['key']}' does not support chat[/red]", highlight=False)
            return

        self._end_session()
        self.use_case = match["key"]
        self.console.print(f"[yellow]Now chatting with: {match['title']}[/yellow]", highlight=False)

    def _fetch_use_cases(self) -> list[dict]:
        try:
            response = self.client.get(f"{self.base_url}/use-cases")
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.console.print(f"[red]Could not list use cases: {e}[/red]", highlight=False)
            return []
        return response.json()

    def _display_response(self, response: dict) -> None:
        """Display the agent reply with nice formatting."""
        text = response.get("response", "No response")
        outcome = response.get("outcome", "")
        attempts = response.get("attempts", 1)

        self.console.print(
            Panel(
                Markdown(text),
                title=f"[bold green]{self.use_case}[/bold green]",
                subtitle=f"[dim]{outcome}, attempts: {attempts}[/dim]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_use_cases(self) -> None:
        """Show the use cases that can be chatted with."""
        lines = [
            f"• {uc['key']} ({uc['number']}): {uc['title']}" for uc in self._fetch_use_cases() if uc["chat"]
        ]
        if not lines:
            return

        self.console.print(
            Panel(
                "\n".join(lines) + "\n\n[dim]Switch with /use <key>[/dim]",
                title="[yellow]Chat-enabled use cases[/yellow]",
                border_style="yellow",
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /use <key> - Switch to another use case (by key or number)
• /clear - End the session and start over
• /quit or /exit - Exit the chat

[bold]Tips:[/bold]
• "functions" and "multi" call local tools such as get_weather and calculate
• Every message is retried once before the fallback reply is returned
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL
    use_case = sys.argv[2] if len(sys.argv) > 2 else "basic"

    chat = ChatCLI(base_url, use_case)
    chat.start()


if __name__ == "__main__":
    main()
