# parts_replenishment/services/session_memory.py
"""Per-session working memory for the narrative reasoning layer.

A SessionContext is created by the caller and handed to each call that should
share it. Nothing here is global; discarding the context discards the memory.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ConversationEntry:
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SessionContext:
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    working_memory: Dict[str, Any] = field(default_factory=dict)
    conversation_history: List[ConversationEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def remember(self, key: str, value: Any):
        """Store a step result in working memory."""
        self.working_memory[key] = value

    def recall(self, key: str, default: Optional[Any] = None) -> Any:
        return self.working_memory.get(key, default)

    def add_message(self, role: str, content: str) -> ConversationEntry:
        entry = ConversationEntry(role=role, content=content)
        self.conversation_history.append(entry)
        return entry

    def recent_messages(self, limit: int = 10) -> List[ConversationEntry]:
        return self.conversation_history[-limit:]

    def clear(self):
        self.working_memory.clear()
        self.conversation_history.clear()
