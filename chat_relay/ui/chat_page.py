"""NiceGUI chat widget consuming the relay's SSE stream."""

import httpx
from nicegui import app, events, ui

from chat_relay.models.schemas import ConversationTurn, Role
from chat_relay.ui.formatting import bullets_to_html, plain_to_html
from chat_relay.ui.session import API_BASE_URL, ChatSession, UploadFailed

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    .chat-card { width: 100%; max-width: 28rem; height: 80vh; }

    .message-user {
        background: #dbeafe;
        border-radius: 12px 12px 4px 12px;
    }

    .message-assistant {
        background: #f3f4f6;
        border-radius: 12px 12px 12px 4px;
    }

    .message-system {
        background: #fef3c7;
        color: #92400e;
        border-radius: 12px;
    }

    .message-assistant ul { margin: 0.25rem 0; }
</style>
"""

BUBBLE_CLASSES = {
    Role.USER: "message-user",
    Role.ASSISTANT: "message-assistant",
    Role.SYSTEM: "message-system",
}

_http_client: httpx.AsyncClient | None = None


def _get_http_client() -> httpx.AsyncClient:
    """Shared client for all widget sessions, closed on shutdown."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=120.0)
        app.on_shutdown(_http_client.aclose)
    return _http_client


@ui.page("/")
def chat_page() -> None:
    """Landing page with the floating chat widget."""
    ui.add_head_html(CUSTOM_CSS)

    session = ChatSession(_get_http_client(), API_BASE_URL)
    # Leaving the page aborts the exchange in flight
    ui.context.client.on_disconnect(session.cancel)

    messages_container: ui.column
    input_field: ui.input
    send_btn: ui.button
    spinner: ui.spinner
    scroll_area: ui.scroll_area

    def render_message(turn: ConversationTurn) -> None:
        is_user = turn.role is Role.USER
        align = "justify-end" if is_user else "justify-start"
        if turn.role is Role.ASSISTANT:
            content = bullets_to_html(turn.content)
        else:
            content = plain_to_html(turn.content)

        with ui.row().classes(f"w-full {align}"):
            with ui.element("div").classes(f"px-3 py-2 max-w-[85%] {BUBBLE_CLASSES[turn.role]}"):
                ui.html(content, sanitize=False).classes("text-sm leading-relaxed")
                ui.button(
                    icon="content_copy",
                    on_click=lambda text=turn.content: copy_text(text),
                ).props("flat dense round size=xs color=grey")

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            for turn in session.turns():
                render_message(turn)
        spinner.set_visibility(session.is_busy)
        scroll_area.scroll_to(percent=1.0)

    def set_input_enabled(enabled: bool) -> None:
        if enabled:
            input_field.enable()
            send_btn.enable()
        else:
            input_field.disable()
            send_btn.disable()

    def copy_text(text: str) -> None:
        ui.clipboard.write(text)
        ui.notify("Copied to clipboard!")

    async def send_message() -> None:
        text = (input_field.value or "").strip()
        if not text or session.is_busy:
            return

        input_field.value = ""
        set_input_enabled(False)
        try:
            await session.send(text)
        finally:
            set_input_enabled(True)
            refresh_messages()

    async def handle_upload(e: events.UploadEventArguments) -> None:
        content = await e.file.read()
        try:
            await session.upload_document(e.file.name, content)
        except UploadFailed as err:
            ui.notify(str(err), type="negative")
        finally:
            uploader.reset()

    async def on_dialog_change(e: events.ValueChangeEventArguments) -> None:
        # Closing the chat aborts the exchange in flight
        if not e.value:
            await session.cancel()

    async def new_chat() -> None:
        await session.reset()

    session.on_change = lambda: refresh_messages()

    with ui.dialog().on_value_change(on_dialog_change) as dialog, ui.card().classes(
        "chat-card flex flex-col p-0"
    ):
        with ui.row().classes("w-full items-center justify-between px-4 py-2 border-b"):
            ui.label("Chat").classes("text-lg font-semibold")
            with ui.row().classes("items-center gap-1"):
                ui.button(
                    icon="content_paste", on_click=lambda: copy_text(session.transcript())
                ).props("flat round dense").tooltip("Copy Entire Chat")
                ui.button(
                    icon="upload_file", on_click=lambda: uploader.run_method("pickFiles")
                ).props("flat round dense").tooltip("Upload PDF")
                ui.button(icon="add", on_click=new_chat).props("flat round dense").tooltip(
                    "New Chat"
                )
                ui.button(icon="close", on_click=dialog.close).props("flat round dense")

        uploader = (
            ui.upload(on_upload=handle_upload, auto_upload=True, max_files=1)
            .props('accept="application/pdf"')
            .classes("hidden")
        )

        with ui.scroll_area().classes("flex-grow w-full") as scroll_area:
            messages_container = ui.column().classes("w-full gap-3 p-4")
            spinner = ui.spinner(size="lg").classes("self-center")
            spinner.set_visibility(False)

        with ui.row().classes("w-full p-3 gap-0 border-t no-wrap"):
            input_field = (
                ui.input(placeholder="Type your message...")
                .props("outlined dense")
                .classes("flex-grow")
                .on("keydown.enter", send_message)
            )
            send_btn = ui.button(icon="send", on_click=send_message).props("unelevated")

    ui.button(icon="chat", on_click=dialog.open).props("fab color=primary").classes(
        "fixed bottom-5 right-5"
    )

    refresh_messages()


def main() -> None:
    ui.run(title="Chat", port=8080, reload=False)


if __name__ == "__main__":
    main()
