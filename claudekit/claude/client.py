"""Claude SDK client wrapper."""
import logging
from typing import AsyncIterator, Optional

from claude_agent_sdk import ClaudeAgentOptions, ClaudeSDKClient

from claudekit.config.settings import Config

logger = logging.getLogger(__name__)

# Commands run outside a project use a scratch directory
SCRATCH_DIR = "/tmp"


def create_claude_options(
    config: Config,
    project_path: str | None = None,
    model: str | None = None,
) -> ClaudeAgentOptions:
    """Build ClaudeAgentOptions from config.

    Args:
        config: Application configuration.
        project_path: Working directory for Claude; scratch dir when None.
        model: Model override; falls back to config.claude.model.

    Returns:
        Configured ClaudeAgentOptions.
    """
    cwd = project_path or SCRATCH_DIR
    logger.info(f"Claude options: cwd={cwd}, model={model or config.claude.model}")
    return ClaudeAgentOptions(
        permission_mode=config.claude.permission_mode,
        max_turns=config.claude.max_turns,
        max_budget_usd=config.claude.max_budget_usd,
        cwd=cwd,
        model=model or config.claude.model,
    )


class KitClient:
    """Wrapper for Claude SDK client bound to a project."""

    def __init__(
        self,
        config: Config,
        project_path: str | None = None,
        model: str | None = None,
    ):
        self.config = config
        self.project_path = project_path
        self.model = model
        self._client: Optional[ClaudeSDKClient] = None

    async def __aenter__(self) -> "KitClient":
        """Enter async context - create SDK client."""
        options = create_claude_options(self.config, self.project_path, self.model)
        self._client = ClaudeSDKClient(options=options)
        await self._client.__aenter__()
        return self

    async def __aexit__(self, *args) -> None:
        """Exit async context - cleanup."""
        if self._client:
            await self._client.__aexit__(*args)
            self._client = None

    async def query(self, prompt: str) -> None:
        """Send a rendered prompt to Claude."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")
        await self._client.query(prompt)

    def receive_response(self) -> AsyncIterator:
        """Async iterator of SDK messages for the last query."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")
        return self._client.receive_response()

    async def interrupt(self) -> None:
        """Interrupt current operation."""
        if self._client:
            await self._client.interrupt()
