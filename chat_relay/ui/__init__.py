"""Chat widget and the client side of the relay stream.

Responsibilities:
    - Incremental SSE consumption and message assembly (stream_consumer)
    - Conversation, in-progress reply and grounding text (session)
    - NiceGUI widget: message display, PDF upload, copy, cancel on close

The NiceGUI page lives in chat_page and is imported by main, so importing
this package does not register any page.
"""
