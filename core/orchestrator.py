"""Top-level application orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.control_loop import ControlLoop
from core.event_bus import EventBus
from core.logging_setup import configure_logging
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from core.system_inspector import describe_system, inspect_system
from executor.action_router import ActionRouter
from executor.chat_interaction import ChatResponder
from executor.plan_runner import PlanRunner
from governance.audit_logger import AuditLogger
from governance.permission_engine import ApprovalGate, Approver
from llm.base_llm import BaseLLM
from llm.llm_factory import build_llm
from memory.memory_manager import MemoryManager
from memory.stores.sql_store import SQLStore
from planner.action_planner import ActionPlanner
from planner.command_extractor import CommandExtractor
from planner.message_analyzer import MessageAnalyzer


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components. Close it (or use ``with``) when done."""

    config: dict[str, Any]
    paths: dict[str, Path]
    llm: BaseLLM
    memory: MemoryManager
    audit_logger: AuditLogger
    plan_runner: PlanRunner
    router: ActionRouter
    approval_gate: ApprovalGate
    event_bus: EventBus
    control_loop: ControlLoop

    def close(self) -> None:
        self.memory.close()

    def __enter__(self) -> RuntimeBundle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(
        self,
        root: Path | None = None,
        approver: Approver | None = None,
        llm: BaseLLM | None = None,
    ) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.approver = approver
        self.llm = llm

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        paths = ensure_runtime_dirs(self.root, config)
        configure_logging(config, paths["log_dir"])

        assistant_cfg = config.get("assistant", {})
        runner_cfg = config.get("runner", {})
        memory_cfg = config.get("memory", {})

        llm = self.llm or build_llm(config=config)
        memory = MemoryManager(
            sql_store=SQLStore(paths["db_path"]),
            history_limit=int(memory_cfg.get("history_limit", 10)),
            llm=llm,
            fact_confidence_threshold=float(memory_cfg.get("fact_confidence_threshold", 0.6)),
        )

        system_context = ""
        if assistant_cfg.get("include_system_context", True):
            system_context = describe_system(inspect_system())

        audit_logger = AuditLogger(paths["audit_log_path"])
        plan_runner = PlanRunner(
            command_extractor=CommandExtractor(llm),
            audit_logger=audit_logger,
            retry_delay=float(runner_cfg.get("retry_delay_seconds", 1.0)),
            default_timeout_ms=int(runner_cfg.get("default_timeout_ms", 30_000)),
            output_preview_chars=int(runner_cfg.get("output_preview_chars", 800)),
        )
        router = ActionRouter(
            plan_runner=plan_runner,
            chat_responder=ChatResponder(llm, memory_context=memory.generate_memory_context),
        )
        approval_gate = ApprovalGate(
            approver=self.approver,
            auto_approve=bool(config.get("governance", {}).get("auto_approve", False)),
        )
        event_bus = EventBus()
        control_loop = ControlLoop(
            event_bus=event_bus,
            analyzer=MessageAnalyzer(llm),
            planner=ActionPlanner(llm, system_context=system_context),
            router=router,
            approval_gate=approval_gate,
            memory_manager=memory,
            min_confidence=float(assistant_cfg.get("min_confidence_threshold", 0.7)),
        )

        return RuntimeBundle(
            config=config,
            paths=paths,
            llm=llm,
            memory=memory,
            audit_logger=audit_logger,
            plan_runner=plan_runner,
            router=router,
            approval_gate=approval_gate,
            event_bus=event_bus,
            control_loop=control_loop,
        )
