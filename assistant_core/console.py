"""Line-based console host for manual testing.

Plain lines are sent to the session; a few slash commands map to the other
host commands: ``/reset``, ``/copy``, ``/export <path>``, ``/quit``.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from assistant_core.api.service import ChatService, create_chat_service
from assistant_core.domain.exceptions import BusinessError
from assistant_core.domain.models import SessionEvent


class ConsolePrinter:
    """Session listener that prints new assistant messages and typing status."""

    def __init__(self, output: Callable[[str], None] = print):
        self._output = output
        self._seen = 0

    def __call__(self, event: SessionEvent) -> None:
        if event.kind == "typing-started":
            self._output("DeepSeek is typing...")
            return
        if event.kind != "history-changed" or event.snapshot is None:
            return
        if len(event.snapshot) < self._seen:
            self._output("(conversation cleared)")
            self._seen = 0
        for message in event.snapshot[self._seen:]:
            if message.role == "assistant":
                self._output(f"DeepSeek: {message.content}")
        self._seen = len(event.snapshot)


class StdoutClipboard:
    def __init__(self, output: Callable[[str], None] = print):
        self._output = output

    def write_text(self, text: str) -> None:
        self._output(text)


async def run_console(
    service: ChatService,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> None:
    service.subscribe(ConsolePrinter(output))
    while True:
        try:
            line = input_fn("You: ")
        except EOFError:
            break
        command = line.strip()
        if command == "/quit":
            break
        try:
            if command == "/reset":
                service.reset()
            elif command == "/copy":
                service.copy_transcript()
            elif command.startswith("/export"):
                path = command[len("/export"):].strip() or "transcript.md"
                output(f"Saved to {service.save_transcript(path)}")
            else:
                await service.submit(line)
        except BusinessError as e:
            output(f"Error: {e.message}")


def main(output: Optional[Callable[[str], None]] = None) -> None:
    out = output or print
    service = create_chat_service(clipboard=StdoutClipboard(out))
    asyncio.run(run_console(service, output=out))
