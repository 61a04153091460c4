import contextlib

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from conftest import HashingEmbedder, words
from ragchat_server.api.dependencies import (
    get_chat_service,
    get_conversation_store,
    get_hub,
    get_index_manager,
    get_ingestion_orchestrator,
)
from ragchat_server.chat.service import ChatService
from ragchat_server.conversations.store import InMemoryConversationStore
from ragchat_server.core.errors import IndexCreateError
from ragchat_server.extraction.extractor import TextExtractor
from ragchat_server.main import create_app
from ragchat_server.rag.ingestion import IngestionOrchestrator
from ragchat_server.rag.retrieval import RetrievalOrchestrator
from ragchat_server.realtime.hub import ConnectionHub
from ragchat_server.vectorstore import FaissBackend, VectorIndexManager


class BrokenCreateBackend(FaissBackend):
    async def create_collection(self, name):
        raise IndexCreateError(f"Vector store refused to create {name} (HTTP 500).")


class Stack:
    """Real pipeline wired over in-process fakes."""

    def __init__(self, backend=None):
        self.hub = ConnectionHub()
        self.store = InMemoryConversationStore()
        self.index_manager = VectorIndexManager(backend or FaissBackend())
        self.embedder = HashingEmbedder()
        self.completion = AsyncMock()
        self.completion.complete.return_value = "Here is what I found."
        self.ingestion = IngestionOrchestrator(
            index_manager=self.index_manager,
            embedder=self.embedder,
            conversations=self.store,
            broadcaster=self.hub,
            extractor=TextExtractor(extensions=[".txt", ".pdf"]),
            chunk_size=500,
        )
        self.chat = ChatService(
            conversations=self.store,
            retrieval=RetrievalOrchestrator(self.index_manager, self.embedder, top_k=3),
            completion=self.completion,
            broadcaster=self.hub,
        )


def make_client(stack):
    app = create_app()
    app.dependency_overrides[get_hub] = lambda: stack.hub
    app.dependency_overrides[get_conversation_store] = lambda: stack.store
    app.dependency_overrides[get_index_manager] = lambda: stack.index_manager
    app.dependency_overrides[get_ingestion_orchestrator] = lambda: stack.ingestion
    app.dependency_overrides[get_chat_service] = lambda: stack.chat

    # Skip real store initialisation
    @contextlib.asynccontextmanager
    async def mock_lifespan(app):
        yield

    app.router.lifespan_context = mock_lifespan
    return TestClient(app)


@pytest.fixture
def stack():
    return Stack()


@pytest.fixture
def client(stack):
    with make_client(stack) as c:
        yield c


# ---------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------

class TestUpload:
    def test_no_files_is_rejected(self, client):
        response = client.post("/upload", data={"convoId": "c1", "userId": "u1"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No files uploaded."

    def test_results_per_file_in_order(self, client, stack):
        response = client.post(
            "/upload",
            data={"convoId": "c1", "userId": "u1"},
            files=[
                ("files", ("long.txt", words("w", 1200).encode(), "text/plain")),
                ("files", ("table.csv", b"a,b\n1,2", "text/csv")),
            ],
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["file"] for r in results] == ["long.txt", "table.csv"]
        assert results[0]["status"] == "processed"
        assert results[0]["words"] == 1200
        assert results[0]["chunks"] == 3
        assert results[1]["status"] == "unsupported-format"

    def test_defaults_conversation_and_user(self, client, stack):
        response = client.post(
            "/upload",
            files=[("files", ("a.txt", b"hello world", "text/plain"))],
        )

        assert response.status_code == 200
        conversations = client.get("/conversations/default").json()["conversations"]
        assert [c["convoId"] for c in conversations] == ["default-convo"]

    def test_index_lifecycle_failure_is_500(self):
        with make_client(Stack(BrokenCreateBackend())) as client:
            response = client.post(
                "/upload",
                data={"convoId": "c1"},
                files=[("files", ("a.txt", b"hello", "text/plain"))],
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "processing_error"
        assert body["detail"].startswith("Processing error:")


# ---------------------------------------------------------------------
# Chat and conversations
# ---------------------------------------------------------------------

class TestChat:
    def test_chat_reply_is_grounded_after_upload(self, client, stack):
        client.post(
            "/upload",
            data={"convoId": "c1", "userId": "u1"},
            files=[("files", ("faq.txt", b"refunds take five days", "text/plain"))],
        )

        response = client.post(
            "/chat", json={"convoId": "c1", "message": "how long do refunds take", "userId": "u1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"]["sender"] == "user"
        assert body["reply"]["message"] == "Here is what I found."
        assert body["reply"]["metadata"] == {"ragContext": True, "chunks": 1}

    def test_chat_without_documents_is_ungrounded(self, client, stack):
        response = client.post("/chat", json={"convoId": "fresh", "message": "hello"})

        assert response.json()["reply"]["metadata"] == {"ragContext": False, "chunks": 0}
        stack.completion.complete.assert_awaited_once_with("hello")

    def test_chat_rejects_unknown_fields(self, client):
        response = client.post("/chat", json={"convoId": "c1", "message": "hi", "extra": 1})

        assert response.status_code == 422

    def test_conversation_list_and_documents(self, client):
        client.post(
            "/upload",
            data={"convoId": "c1", "userId": "u1"},
            files=[("files", ("a.txt", b"alpha beta", "text/plain"))],
        )
        client.post("/chat", json={"convoId": "c1", "message": "hi", "userId": "u1"})

        conversations = client.get("/conversations/u1").json()["conversations"]
        assert len(conversations) == 1
        assert conversations[0]["convoId"] == "c1"
        assert conversations[0]["messageCount"] == 2
        assert conversations[0]["hasDocuments"] is True

        documents = client.get("/conversations/c1/documents").json()["documents"]
        assert [(d["filename"], d["words"], d["chunks"]) for d in documents] == [("a.txt", 2, 1)]


# ---------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "services": {"vector_store": "connected", "conversation_store": "connected"},
    }


# ---------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------

class TestWebSocket:
    def test_join_then_message_broadcasts_both_turns(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "join", "data": {"convoId": "c1", "user": "u1"}})
            assert ws.receive_json() == {"event": "history", "data": []}

            ws.send_json(
                {"event": "send_message", "data": {"convoId": "c1", "message": "hello"}}
            )
            first = ws.receive_json()
            second = ws.receive_json()

        assert first["event"] == "new_message"
        assert first["data"]["sender"] == "user"
        assert second["event"] == "new_message"
        assert second["data"]["sender"] == "bot"
        assert second["data"]["metadata"] == {"ragContext": False, "chunks": 0}

    def test_upload_clears_joined_clients(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "join", "data": {"convoId": "c1", "user": "u1"}})
            ws.receive_json()

            client.post(
                "/upload",
                data={"convoId": "c1", "userId": "u1"},
                files=[("files", ("a.txt", b"text", "text/plain"))],
            )

            assert ws.receive_json() == {"event": "clear_history", "data": {"convoId": "c1"}}

    def test_history_replayed_on_join(self, client):
        client.post("/chat", json={"convoId": "c1", "message": "earlier", "userId": "u1"})

        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "join", "data": {"convoId": "c1", "user": "u1"}})
            history = ws.receive_json()["data"]

        assert [m["message"] for m in history] == ["earlier", "Here is what I found."]

    @pytest.mark.parametrize(
        "frame, expected",
        [
            ("not json", "Malformed frame"),
            ('{"data": {}}', "Malformed frame"),
            ('{"event": "dance", "data": {}}', "Unknown event: dance"),
            ('{"event": "send_message", "data": {"convoId": "c1"}}', "Invalid payload for send_message"),
        ],
    )
    def test_bad_frames_get_error_event(self, client, frame, expected):
        with client.websocket_connect("/ws") as ws:
            ws.send_text(frame)
            assert ws.receive_json() == {"event": "error", "data": {"message": expected}}
