"""Wires skills, configuration, the advisory service and the controllers together."""

import asyncio
import logging
import random
from pathlib import Path
from typing import Callable, Dict, Optional

from ..controllers import (
    AnswerController,
    CommandController,
    ConfigController,
    ConfirmController,
    ExecuteController,
    IntrospectController,
    RefinementController,
    ScheduleController,
    ValidateController,
)
from ..execution.executor import CommandExecutor, DummyExecutor, ShellExecutor
from ..interaction import ConsolePrompter, Prompter
from ..llm.base import AdvisoryService
from ..llm.litellm_service import LiteLLMAdvisoryService
from ..queue import units
from ..queue.units import UnitKind
from ..queue.workflow import Controller, LifecycleManager, WorkflowState
from ..skills.library import SkillLibrary
from ..skills.validator import ExecutionValidator
from ..utils.rich_logging import ROOT_LOGGER, WarningCollector
from .config import EngineConfig, default_config_path
from .config_store import ConfigStore
from .router import TaskRouter

logger = logging.getLogger(__name__)


class Engine:
    """One request in, one exit code out.

    Every collaborator can be injected; anything left out is built from
    ``config``. Skills are loaded from disk at the start of each request.

    Args:
        config: Engine configuration
        config_path: User configuration file (defaults to ~/.taskpilotrc)
        service: Advisory service (litellm by default)
        executor: Command executor (ShellExecutor, or DummyExecutor for dry runs)
        prompter: User input (ConsolePrompter by default)
        dry_run: Use a DummyExecutor instead of running commands
        rng: Random source for message variations
    """

    def __init__(
        self,
        config: EngineConfig,
        config_path: Optional[Path] = None,
        service: Optional[AdvisoryService] = None,
        executor: Optional[CommandExecutor] = None,
        prompter: Optional[Prompter] = None,
        dry_run: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.store = ConfigStore(config_path or default_config_path())
        self.library = SkillLibrary()
        self.service = service or LiteLLMAdvisoryService(
            config.llm, skills_section=self._skills_section
        )
        if executor is None:
            executor = DummyExecutor() if dry_run else ShellExecutor(
                default_timeout_ms=config.settings.command_timeout_ms
            )
        self.executor = executor
        self.prompter = prompter or ConsolePrompter()
        self.rng = rng
        self.cancel_event = asyncio.Event()
        self.handle_sigint = isinstance(self.prompter, ConsolePrompter)

    def _skills_section(self) -> str:
        return self.library.format_for_prompt()

    def reload_skills(self) -> None:
        self.library = SkillLibrary.from_directory(self.config.skills_dir)

    def build_controllers(self) -> Dict[UnitKind, Controller]:
        validator = ExecutionValidator(self.library, self.store.load)
        router = TaskRouter(validator, rng=self.rng)
        return {
            UnitKind.COMMAND: CommandController(self.service, router),
            UnitKind.SCHEDULE: ScheduleController(router, self.prompter),
            UnitKind.CONFIRM: ConfirmController(router, self.prompter),
            UnitKind.REFINEMENT: RefinementController(self.service, router),
            UnitKind.ANSWER: AnswerController(self.service),
            UnitKind.INTROSPECT: IntrospectController(self.service, self.config.settings.debug),
            UnitKind.CONFIG: ConfigController(self.store, self.prompter, self.service),
            UnitKind.VALIDATE: ValidateController(self.service, self.store, self.prompter),
            UnitKind.EXECUTE: ExecuteController(
                self.service,
                self.library,
                self.store.load,
                self.executor,
                cancel_event=self.cancel_event,
                output_lines=self.config.settings.output_lines,
                handle_sigint=self.handle_sigint,
            ),
        }

    async def run(
        self,
        request: str,
        on_change: Optional[Callable[[WorkflowState], None]] = None,
    ) -> int:
        """Plan, confirm and carry out ``request``. Returns the process exit code."""
        collector = WarningCollector()
        engine_logger = logging.getLogger(ROOT_LOGGER)
        engine_logger.addHandler(collector)
        try:
            self.reload_skills()
            manager = LifecycleManager(self.build_controllers(), on_change=on_change, warnings=collector)
            code = await manager.run([units.command(request)])
        finally:
            engine_logger.removeHandler(collector)
        logger.debug(f"Request finished with exit code {code}")
        return code
