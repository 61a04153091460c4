"""
Conversation-scoped retrieval-augmented chat backend.
"""
