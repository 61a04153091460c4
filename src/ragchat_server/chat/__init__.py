from .service import ChatService, ChatTurn

__all__ = ["ChatService", "ChatTurn"]
