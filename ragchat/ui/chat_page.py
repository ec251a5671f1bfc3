"""NiceGUI chat interface driving a ChatConversation."""

import httpx
from nicegui import app, ui

from ragchat.chat.conversation import ChatConversation
from ragchat.client.config import ClientConfig, get_client_config
from ragchat.client.errors import ConversationBusyError
from ragchat.client.transport import ChatTransport
from ragchat.models.schemas import ChatMessage, ChatRole
from ragchat.session.storage import JsonFileStorage
from ragchat.session.store import SessionStore

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f5f5f5; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }

    .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }

    .message-user {
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }
</style>
"""

# Module-level shared HTTP client, closed on shutdown
_http_client: httpx.AsyncClient | None = None


def get_http_client(config: ClientConfig) -> httpx.AsyncClient:
    """Get or create the shared HTTP client."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=config.timeout)
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


app.on_shutdown(close_http_client)


def create_conversation(config: ClientConfig | None = None) -> ChatConversation:
    """Build a conversation backed by the configured storage file and endpoint."""
    config = config or get_client_config()
    return ChatConversation(
        store=SessionStore(JsonFileStorage(config.storage_path)),
        transport=ChatTransport(get_http_client(config)),
        url=config.chat_url,
    )


def format_time(timestamp: str) -> str:
    """Return HH:MM from an ISO timestamp, or the raw value if it is too short."""
    return timestamp[11:16] if len(timestamp) >= 16 else timestamp


@ui.page("/")
def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    conversation = create_conversation()

    messages_container: ui.column
    input_field: ui.textarea
    send_btn: ui.button
    stop_btn: ui.button

    def render_message(msg: ChatMessage) -> ui.markdown:
        is_user = msg.role is ChatRole.USER
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-assistant"

        with ui.row().classes(f"w-full {align}"):
            with ui.column().classes("max-w-[70%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    body = ui.markdown(msg.content or "…").classes("text-sm")
                    if msg.sources:
                        names = ", ".join(s.filename or s.source_name or "?" for s in msg.sources)
                        ui.label(f"Sources: {names}").classes("text-xs text-gray-500")
                footer = format_time(msg.timestamp)
                if msg.confidence is not None:
                    footer += f" · {int(msg.confidence)} tokens"
                ui.label(footer).classes("text-[10px] text-gray-400")
        return body

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            if not conversation.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("forum").classes("text-5xl text-gray-300")
                    ui.label("Start a conversation").classes("text-lg text-gray-400")
            else:
                for msg in conversation.messages:
                    render_message(msg)

    def set_streaming(streaming: bool) -> None:
        send_btn.set_enabled(not streaming)
        stop_btn.set_visibility(streaming)

    async def send_message() -> None:
        text = input_field.value.strip()
        if not text or conversation.in_flight:
            return

        input_field.value = ""
        set_streaming(True)

        with messages_container:
            render_message(ChatMessage(role=ChatRole.USER, content=text))
            response_body = render_message(ChatMessage(role=ChatRole.ASSISTANT, content=""))

        def on_update(msg: ChatMessage) -> None:
            response_body.set_content(msg.content)

        def on_error(error: str) -> None:
            ui.notify(error, type="negative")

        try:
            await conversation.send_message(text, on_update=on_update, on_error=on_error)
        finally:
            set_streaming(False)
            refresh_messages()

    def stop_streaming() -> None:
        if conversation.cancel():
            ui.notify("Response cancelled")

    def new_chat() -> None:
        try:
            conversation.new_session()
        except ConversationBusyError as e:
            ui.notify(str(e), type="warning")
            return
        refresh_messages()
        ui.notify("New session started")

    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("menu_book").classes("text-white text-3xl")
                ui.label("Knowledge Base Chat").classes("text-lg font-semibold text-white")
            with ui.row().classes("items-center gap-3"):
                ui.label().bind_text_from(
                    conversation, "session_id", lambda s: s[:8].upper()
                ).classes("text-xs text-white/80 font-mono")
                ui.button(icon="add", on_click=new_chat).props("flat round color=white")

        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t"):
            input_field = (
                ui.textarea(placeholder="Ask a question about your documents...")
                .props("autogrow borderless dense rows=1")
                .classes("flex-grow")
                .on("keydown.enter.prevent", send_message)
            )
            stop_btn = ui.button(icon="stop", on_click=stop_streaming).props("round flat")
            stop_btn.set_visibility(False)
            send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")

