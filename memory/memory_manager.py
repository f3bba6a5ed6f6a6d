"""High-level memory manager: conversation history, learned facts and preferences."""

from __future__ import annotations

import logging
from typing import Any

from llm.base_llm import BaseLLM
from llm.json_utils import parse_json_object
from memory.schemas import (
    ConversationRecord,
    UserFactRecord,
    UserPreferenceRecord,
    UserProfileRecord,
)
from memory.stores.sql_store import SQLStore
from planner.execution_plan import AnalysisResult
from planner.prompts import FACT_EXTRACTION_PROMPT

logger = logging.getLogger("na.memory")

CONFIDENCE_STEP = 0.1


class MemoryManager:
    """Remembers recent exchanges and what the user has told about themselves."""

    def __init__(
        self,
        sql_store: SQLStore,
        history_limit: int = 10,
        llm: BaseLLM | None = None,
        fact_confidence_threshold: float = 0.6,
    ) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.history_limit = history_limit
        self.llm = llm
        self.fact_confidence_threshold = fact_confidence_threshold

    # ── Conversations ────────────────────────────────────────────────

    def save_conversation(
        self,
        user_message: str,
        ai_response: str | None = None,
        intent_type: str | None = None,
        intent_category: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Store one exchange and prune history to the most recent ``history_limit``."""
        record = ConversationRecord(
            user_message=user_message,
            ai_response=ai_response,
            intent_type=intent_type,
            intent_category=intent_category,
            metadata_json=metadata,
        )
        with self.sql_store.session() as sess:
            sess.add(record)
            sess.flush()
            record_id = record.id
            keep_ids = [
                row_id
                for (row_id,) in sess.query(ConversationRecord.id)
                .order_by(ConversationRecord.id.desc())
                .limit(self.history_limit)
                .all()
            ]
            (
                sess.query(ConversationRecord)
                .filter(ConversationRecord.id.not_in(keep_ids))
                .delete(synchronize_session=False)
            )
        logger.info("Conversation saved (id=%s)", record_id)
        return record_id

    def get_recent_conversations(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Most recent conversations first."""
        with self.sql_store.session() as sess:
            rows = (
                sess.query(ConversationRecord)
                .order_by(ConversationRecord.id.desc())
                .limit(limit or self.history_limit)
                .all()
            )
            return [self._conversation_to_dict(row) for row in rows]

    # ── Facts ────────────────────────────────────────────────────────

    def learn_user_fact(
        self,
        fact_type: str,
        fact_value: str,
        source: str = "conversation",
        confidence: float = 0.7,
    ) -> dict[str, Any]:
        """Insert a fact, or raise the confidence of one already known."""
        with self.sql_store.session() as sess:
            row = (
                sess.query(UserFactRecord)
                .filter(UserFactRecord.fact_type == fact_type, UserFactRecord.fact_value == fact_value)
                .first()
            )
            if row is None:
                row = UserFactRecord(
                    fact_type=fact_type,
                    fact_value=fact_value,
                    source=source,
                    confidence=max(0.0, min(1.0, confidence)),
                )
                sess.add(row)
                logger.info("Learned new user fact %s=%s", fact_type, fact_value)
            else:
                row.confidence = min(1.0, row.confidence + CONFIDENCE_STEP)
                logger.info("Updated user fact %s confidence to %.2f", fact_type, row.confidence)
            sess.flush()
            return self._fact_to_dict(row)

    def get_user_facts(self, fact_type: str | None = None) -> list[dict[str, Any]]:
        """Facts ordered by confidence, then most recently updated."""
        with self.sql_store.session() as sess:
            query = sess.query(UserFactRecord)
            if fact_type is not None:
                query = query.filter(UserFactRecord.fact_type == fact_type)
            rows = query.order_by(
                UserFactRecord.confidence.desc(),
                UserFactRecord.updated_at.desc(),
                UserFactRecord.id.desc(),
            ).all()
            return [self._fact_to_dict(row) for row in rows]

    # ── Preferences ──────────────────────────────────────────────────

    def set_preference(self, key: str, value: str) -> None:
        with self.sql_store.session() as sess:
            row = sess.query(UserPreferenceRecord).filter(UserPreferenceRecord.preference_key == key).first()
            if row is None:
                sess.add(UserPreferenceRecord(preference_key=key, preference_value=value))
            else:
                row.preference_value = value

    def get_preference(self, key: str) -> str | None:
        with self.sql_store.session() as sess:
            row = sess.query(UserPreferenceRecord).filter(UserPreferenceRecord.preference_key == key).first()
            return row.preference_value if row else None

    # ── Insight extraction ───────────────────────────────────────────

    def extract_insights(self, message: str, analysis: AnalysisResult | None = None) -> dict[str, Any]:
        """Ask the LLM for durable facts in ``message`` and store the confident ones.

        Extraction problems are logged and yield empty insights.
        """
        insights: dict[str, list[dict[str, Any]]] = {"facts": [], "context": []}
        if self.llm is not None:
            try:
                reply = self.llm.chat(
                    [
                        {"role": "system", "content": FACT_EXTRACTION_PROMPT},
                        {"role": "user", "content": message},
                    ],
                    json_mode=True,
                    temperature=0.0,
                )
                data = parse_json_object(reply) or {}
                facts = data.get("facts")
                for fact in facts if isinstance(facts, list) else []:
                    if not isinstance(fact, dict) or not fact.get("type") or not fact.get("value"):
                        continue
                    confidence = float(fact.get("confidence", 0.0))
                    if confidence < self.fact_confidence_threshold:
                        logger.debug("Skipped low confidence fact %s", fact)
                        continue
                    entry = {"type": str(fact["type"]), "value": str(fact["value"]), "confidence": confidence}
                    self.learn_user_fact(entry["type"], entry["value"], "ai_extraction", confidence)
                    insights["facts"].append(entry)
            except Exception:
                logger.exception("Fact extraction failed")

        if analysis is not None:
            insights["context"].append(
                {
                    "intent_type": analysis.type,
                    "intent_category": analysis.intent,
                    "confidence": analysis.confidence,
                }
            )
        return insights

    # ── Prompt context ───────────────────────────────────────────────

    def generate_memory_context(self) -> str:
        facts = self.get_user_facts()
        conversations = self.get_recent_conversations()
        lines = ["## USER MEMORY & CONTEXT", ""]

        if facts:
            lines.append("Known facts about the user:")
            seen: set[str] = set()
            for fact in facts:
                # facts arrive best-first, keep the top one per type
                if fact["fact_type"] in seen:
                    continue
                seen.add(fact["fact_type"])
                lines.append(
                    f"- {fact['fact_type']}: {fact['fact_value']} "
                    f"(confidence: {fact['confidence'] * 100:.0f}%)"
                )
            lines.append("")

        if conversations:
            lines.append("Recent conversation history:")
            for idx, convo in enumerate(reversed(conversations), start=1):
                message = convo["user_message"]
                if len(message) > 100:
                    message = message[:100] + "..."
                stamp = convo["created_at"].strftime("%Y-%m-%d %H:%M") if convo["created_at"] else "?"
                lines.append(f'{idx}. [{stamp}] User: "{message}"')
                if convo["intent_type"]:
                    lines.append(f"   -> Intent: {convo['intent_type']}/{convo['intent_category'] or 'unknown'}")
            lines.append("")

        if not facts and not conversations:
            lines.append("No previous context available. This appears to be a new conversation.")
            lines.append("")

        lines.append("Use this context to personalize answers and stay consistent with known preferences.")
        return "\n".join(lines)

    def generate_compact_memory_context(self) -> str:
        facts = self.get_user_facts()
        conversations = self.get_recent_conversations(3)
        if facts:
            summary = ", ".join(f"{f['fact_type']}:{f['fact_value']}" for f in facts[:3])
        else:
            summary = "New user"
        if conversations:
            summary += f" | Recent: {conversations[0]['intent_type'] or 'chat'}"
        return f"## MEMORY: {summary}"

    # ── Maintenance ──────────────────────────────────────────────────

    def clear_all(self) -> None:
        with self.sql_store.session() as sess:
            for model in (ConversationRecord, UserFactRecord, UserPreferenceRecord, UserProfileRecord):
                sess.query(model).delete()
        logger.warning("All memory cleared")

    def get_stats(self) -> dict[str, int]:
        with self.sql_store.session() as sess:
            return {
                "conversations": sess.query(ConversationRecord).count(),
                "facts": sess.query(UserFactRecord).count(),
                "preferences": sess.query(UserPreferenceRecord).count(),
            }

    def close(self) -> None:
        self.sql_store.dispose()

    @staticmethod
    def _conversation_to_dict(row: ConversationRecord) -> dict[str, Any]:
        return {
            "id": row.id,
            "user_message": row.user_message,
            "ai_response": row.ai_response,
            "intent_type": row.intent_type,
            "intent_category": row.intent_category,
            "metadata": row.metadata_json,
            "created_at": row.created_at,
        }

    @staticmethod
    def _fact_to_dict(row: UserFactRecord) -> dict[str, Any]:
        return {
            "id": row.id,
            "fact_type": row.fact_type,
            "fact_value": row.fact_value,
            "source": row.source,
            "confidence": row.confidence,
            "updated_at": row.updated_at,
        }
