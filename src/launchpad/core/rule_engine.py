"""Keyword intent classification and deterministic chat responses."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from launchpad.models.chat import (
    ActionType,
    ChatAction,
    ChatContext,
    ChatResponse,
    Intent,
    ResponseSource,
)
from launchpad.models.events import LogEntry, LogType
from launchpad.models.setup import DependencyStatus, SetupStatus

MATCH_CONFIDENCE = 0.9
NO_MATCH_CONFIDENCE = 0.3
RECENT_LOG_WINDOW = 10

# Order matters: the first matching intent wins.
INTENT_PATTERNS: tuple[tuple[Intent, re.Pattern[str]], ...] = (
    (Intent.INSTALL, re.compile(r"install|dependencies|npm|packages|setup", re.IGNORECASE)),
    (Intent.START, re.compile(r"start|run|launch|serve|begin", re.IGNORECASE)),
    (Intent.STOP, re.compile(r"stop|kill|terminate|end", re.IGNORECASE)),
    (Intent.STATUS, re.compile(r"status|progress|what.*happening|how.*going", re.IGNORECASE)),
    (Intent.ERROR, re.compile(r"error|fail|broken|issue|problem|fix|debug", re.IGNORECASE)),
    (Intent.CONFIGURE, re.compile(r"config|setup|change|modify|settings", re.IGNORECASE)),
    (Intent.CONTAINER, re.compile(r"docker|container|compose", re.IGNORECASE)),
    (Intent.ENVIRONMENT, re.compile(r"env|environment|variable", re.IGNORECASE)),
    (Intent.HELP, re.compile(r"help|how|what.*do|guide", re.IGNORECASE)),
)


@dataclass(slots=True)
class IntentMatch:
    intent: Intent
    confidence: float


@dataclass(slots=True)
class Diagnosis:
    """Advisory explanation of an error log line."""

    issue: str
    solution: str
    confidence: float
    actions: list[ChatAction] = field(default_factory=list)


def _port_in_use(match: re.Match[str]) -> Diagnosis:
    port = match.group(1)
    return Diagnosis(
        issue=f"Port {port} is already in use",
        solution=(
            f"Another process is using port {port}. You can:\n"
            "1. Kill the process using that port\n"
            "2. Change the port in your configuration"
        ),
        actions=[
            ChatAction(type=ActionType.SUGGESTION, payload={"command": f"npx kill-port {port}"})
        ],
        confidence=0.95,
    )


def _missing_module(match: re.Match[str]) -> Diagnosis:
    module = match.group(1)
    return Diagnosis(
        issue=f"Missing module: {module}",
        solution=f'The module "{module}" is not installed. Run npm install to fix this.',
        actions=[ChatAction(type=ActionType.START_SETUP)],
        confidence=0.9,
    )


def _missing_env(_match: re.Match[str]) -> Diagnosis:
    return Diagnosis(
        issue="Missing .env file",
        solution=(
            "Your project needs a .env file. I can create one from .env.example if it exists."
        ),
        actions=[ChatAction(type=ActionType.CREATE_ENV)],
        confidence=1.0,
    )


def _npm_failure(_match: re.Match[str]) -> Diagnosis:
    return Diagnosis(
        issue="NPM installation error",
        solution=(
            "There was an error during npm install. Try:\n"
            "1. Delete node_modules and package-lock.json\n"
            "2. Run npm install again\n"
            "3. Check your internet connection"
        ),
        actions=[ChatAction(type=ActionType.RETRY)],
        confidence=0.7,
    )


# Order matters: the first matching pattern wins.
DIAGNOSIS_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[re.Match[str]], Diagnosis]], ...] = (
    (re.compile(r"EADDRINUSE.*:(\d+)", re.IGNORECASE), _port_in_use),
    (re.compile(r"Cannot find module ['\"](.+?)['\"]", re.IGNORECASE), _missing_module),
    (re.compile(r"ENOENT.*\.env", re.IGNORECASE), _missing_env),
    (re.compile(r"npm ERR!", re.IGNORECASE), _npm_failure),
)

UNKNOWN_DIAGNOSIS = Diagnosis(
    issue="Unknown error",
    solution="I couldn't identify the specific error. Check the terminal logs for more details.",
    confidence=0.3,
)

HELP_LINES = (
    "I can help you with:",
    "- 'install dependencies' - Install all project dependencies",
    "- 'start server' - Start development servers",
    "- 'check status' - See current project status",
    "- 'fix errors' - Diagnose and fix common errors",
    "- 'generate docker-compose' - Create Docker configuration",
    "- 'create .env file' - Set up environment variables",
    "",
    "Just ask me in natural language!",
)


def classify(text: str) -> IntentMatch:
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(text):
            return IntentMatch(intent=intent, confidence=MATCH_CONFIDENCE)
    return IntentMatch(intent=Intent.UNKNOWN, confidence=NO_MATCH_CONFIDENCE)


def diagnose_error(message: str) -> Diagnosis:
    for pattern, diagnose in DIAGNOSIS_PATTERNS:
        match = pattern.search(message)
        if match:
            return diagnose(match)
    return Diagnosis(
        issue=UNKNOWN_DIAGNOSIS.issue,
        solution=UNKNOWN_DIAGNOSIS.solution,
        confidence=UNKNOWN_DIAGNOSIS.confidence,
    )


def _reply(
    message: str,
    confidence: float,
    actions: list[ChatAction] | None = None,
) -> ChatResponse:
    return ChatResponse(
        message=message,
        actions=actions or [],
        confidence=confidence,
        source=ResponseSource.RULES,
    )


class RuleEngine:
    """Map an intent and a context snapshot to a canned response."""

    def __init__(self) -> None:
        self._handlers: dict[Intent, Callable[[ChatContext, str], ChatResponse]] = {
            Intent.INSTALL: self._install,
            Intent.START: self._start,
            Intent.STOP: self._stop,
            Intent.STATUS: self._status,
            Intent.ERROR: self._error,
            Intent.CONFIGURE: self._configure,
            Intent.CONTAINER: self._container,
            Intent.ENVIRONMENT: self._environment,
            Intent.HELP: self._help,
        }

    def classify(self, text: str) -> IntentMatch:
        return classify(text)

    def diagnose(self, message: str) -> Diagnosis:
        return diagnose_error(message)

    def respond(self, intent: Intent, text: str, context: ChatContext) -> ChatResponse:
        handler = self._handlers.get(intent)
        if handler is None:
            return self._unknown()
        return handler(context, text)

    def _install(self, context: ChatContext, _text: str) -> ChatResponse:
        if not context.has_project:
            return _reply("Please upload a project first before installing dependencies.", 1.0)
        if context.setup_status is SetupStatus.INSTALLING:
            return _reply(
                "Installation is already in progress. Check the terminal for details.", 1.0
            )
        return _reply(
            "I'll install all dependencies for you. This may take a few minutes.",
            1.0,
            [ChatAction(type=ActionType.START_SETUP)],
        )

    def _start(self, context: ChatContext, _text: str) -> ChatResponse:
        if not context.has_project:
            return _reply("No project loaded. Please upload a project first.", 1.0)
        if context.setup_status is SetupStatus.RUNNING:
            servers = _server_lines(context)
            if servers:
                return _reply("Servers are already running:\n" + "\n".join(servers), 1.0)
            return _reply("Setup is running. Check the terminal for progress.", 1.0)
        return _reply(
            "Starting the setup process...", 1.0, [ChatAction(type=ActionType.START_SETUP)]
        )

    def _stop(self, context: ChatContext, _text: str) -> ChatResponse:
        if context.setup_status not in (SetupStatus.RUNNING, SetupStatus.INSTALLING):
            return _reply("No processes are currently running.", 1.0)
        return _reply(
            "I can stop the tracked dev server. Processes spawned by it may keep running; "
            "close them from the terminal if needed.",
            0.8,
            [ChatAction(type=ActionType.STOP_SETUP)],
        )

    def _status(self, context: ChatContext, _text: str) -> ChatResponse:
        if not context.has_project:
            return _reply("No project loaded yet. Upload a project to get started.", 1.0)

        lines = [f"Project: {context.project_name}", f"Status: {context.setup_status.value}"]
        if context.analysis is not None:
            lines.append(f"Type: {context.analysis.kind.value}")
            lines.append(f"Stack: {', '.join(context.analysis.stack)}")

        if context.dependencies:
            total = len(context.dependencies)
            installed = sum(
                1 for dep in context.dependencies if dep.status is DependencyStatus.INSTALLED
            )
            failed = sum(1 for dep in context.dependencies if dep.status is DependencyStatus.FAILED)
            summary = f"Dependencies: {installed}/{total} installed"
            if failed:
                summary += f", {failed} failed"
            lines.append(summary)

        servers = _server_lines(context)
        if servers:
            lines.append("")
            lines.append("Running Servers:")
            lines.extend(f"   {server}" for server in servers)
        return _reply("\n".join(lines), 1.0)

    def _error(self, context: ChatContext, _text: str) -> ChatResponse:
        last_error = _last_error(context.logs)
        if last_error is None:
            return _reply(
                "I don't see any recent errors. If you're experiencing issues, "
                "please describe them in detail.",
                0.7,
            )
        diagnosis = diagnose_error(last_error.message)
        return _reply(
            f"I found an error: {diagnosis.issue}\n\n{diagnosis.solution}",
            diagnosis.confidence,
            list(diagnosis.actions),
        )

    def _configure(self, _context: ChatContext, _text: str) -> ChatResponse:
        return _reply(
            "Settings are read from LAUNCHPAD_* environment variables. Useful ones:\n"
            "- LAUNCHPAD_DEFAULT_SHELL\n"
            "- LAUNCHPAD_USE_SYSTEM_TERMINAL\n"
            "- LAUNCHPAD_INSTALL_POLICY (best-effort or strict)\n"
            "- LAUNCHPAD_LLM_API_KEY and LAUNCHPAD_LLM_MODEL for AI answers",
            1.0,
        )

    def _container(self, context: ChatContext, _text: str) -> ChatResponse:
        analysis = context.analysis
        if analysis is None:
            return _reply("Please load a project first.", 1.0)
        if analysis.has_compose:
            return _reply(
                "Your project already has a docker-compose.yml file. "
                "You can start it with: docker-compose up",
                1.0,
            )
        if analysis.has_database:
            return _reply(
                "I can generate a docker-compose.yml file for your database. "
                "Would you like me to do that?",
                0.9,
                [ChatAction(type=ActionType.GENERATE_CONTAINER_CONFIG)],
            )
        return _reply(
            "Your project doesn't seem to need Docker. "
            "It's typically used for databases and containerized services.",
            0.8,
        )

    def _environment(self, context: ChatContext, _text: str) -> ChatResponse:
        analysis = context.analysis
        if analysis is None:
            return _reply("Please load a project first.", 1.0)
        if analysis.has_env:
            return _reply(
                "Your project has a .env file. "
                "Make sure to update it with your actual configuration values.",
                1.0,
            )
        if analysis.has_env_example:
            return _reply(
                "I can create a .env file from your .env.example with placeholder values.",
                1.0,
                [ChatAction(type=ActionType.CREATE_ENV)],
            )
        return _reply(
            "Your project doesn't have .env or .env.example files. Environment variables "
            "are used for configuration like API keys and database URLs.",
            0.9,
        )

    def _help(self, _context: ChatContext, _text: str) -> ChatResponse:
        return _reply("\n".join(HELP_LINES), 1.0)

    def _unknown(self) -> ChatResponse:
        return _reply(
            "I'm not sure what you're asking. Try:\n"
            "- 'install dependencies'\n"
            "- 'start server'\n"
            "- 'check status'\n"
            "- 'help' for more options",
            NO_MATCH_CONFIDENCE,
        )


def _server_lines(context: ChatContext) -> list[str]:
    servers: list[str] = []
    if context.running_servers.frontend:
        servers.append(f"Frontend: {context.running_servers.frontend}")
    if context.running_servers.backend:
        servers.append(f"Backend: {context.running_servers.backend}")
    return servers


def _last_error(logs: list[LogEntry]) -> LogEntry | None:
    recent = logs[-RECENT_LOG_WINDOW:]
    errors = [entry for entry in recent if entry.type is LogType.ERROR]
    return errors[-1] if errors else None
