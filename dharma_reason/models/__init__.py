from dharma_reason.models.chat import ChatMessage, ChatRequest, Role

__all__ = ["ChatMessage", "ChatRequest", "Role"]
