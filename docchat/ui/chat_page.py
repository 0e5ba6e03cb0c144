"""NiceGUI chat view bound to a ChatSession."""

import logging
from urllib.parse import quote

from nicegui import Client, background_tasks, ui

from docchat.config import get_chat_config
from docchat.exceptions import ChatError
from docchat.models.schemas import ChatSnapshot, ConnectionState, Message, Role, SessionInfo
from docchat.sync.session import ChatSession

logger = logging.getLogger(__name__)

_STATE_COLORS = {
    ConnectionState.CONNECTED: "text-green-500",
    ConnectionState.CONNECTING: "text-amber-400",
    ConnectionState.DISCONNECTED: "text-red-500",
}


def bind_session_lifetime(client: Client, chat: ChatSession) -> None:
    """Close the session when NiceGUI deletes the client.

    A browser reconnect keeps the same client, so the session survives it.
    """
    client.on_delete(chat.close)


def render_avatar(is_user: bool) -> None:
    icon = "person" if is_user else "smart_toy"
    color = "bg-indigo-500" if is_user else "bg-gray-500"
    with ui.element("div").classes(
        f"w-9 h-9 rounded-full flex items-center justify-center {color}"
    ):
        ui.icon(icon).classes("text-white text-lg")


def render_message(msg: Message) -> None:
    is_user = msg.role is Role.USER
    align = "justify-end" if is_user else "justify-start"
    bubble = "bg-indigo-500 text-white" if is_user else "bg-gray-100 text-gray-800"

    with ui.row().classes(f"w-full {align} gap-3 items-end"):
        if not is_user:
            render_avatar(False)
        with ui.column().classes("max-w-[70%] gap-1"):
            with ui.element("div").classes(f"px-4 py-3 rounded-2xl {bubble}"):
                if is_user:
                    ui.label(msg.content).classes("text-sm whitespace-pre-wrap")
                else:
                    ui.markdown(msg.content).classes("text-sm")
            ui.label(msg.created_at.strftime("%I:%M %p")).classes(
                f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
            )
        if is_user:
            render_avatar(True)


@ui.page("/")
def index_page() -> None:
    """Entry point when no session was handed over."""
    with ui.column().classes("w-full max-w-md mx-auto mt-24 gap-4"):
        ui.label("Open a document chat").classes("text-lg font-semibold")
        session_input = ui.input("Session ID").classes("w-full")
        name_input = ui.input("Document name").classes("w-full")

        def open_chat() -> None:
            session_id = (session_input.value or "").strip()
            if not session_id:
                ui.notify("A session ID is required", type="warning")
                return
            name = quote(name_input.value or "")
            ui.navigate.to(f"/chat/{quote(session_id, safe='')}?document_name={name}")

        ui.button("Open", on_click=open_chat)


@ui.page("/chat/{session_id}")
async def chat_page(
    session_id: str, document_name: str = "", document_id: str | None = None
) -> None:
    """Chat view for one session; the session lives as long as the client."""
    chat = ChatSession(
        SessionInfo(session_id=session_id, document_id=document_id, document_name=document_name),
        get_chat_config(),
    )
    bind_session_lifetime(ui.context.client, chat)

    def render(snapshot: ChatSnapshot) -> None:
        state_icon.classes(
            replace=f"text-sm {_STATE_COLORS[snapshot.connection_state]}"
        )
        state_label.set_text(snapshot.connection_state.value)

        messages_container.clear()
        with messages_container:
            if not snapshot.messages and not snapshot.is_loading:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("forum").classes("text-5xl text-gray-300")
                    ui.label("Ask any question about the document").classes(
                        "text-lg text-gray-400"
                    )
            for msg in snapshot.messages:
                render_message(msg)
            if snapshot.is_loading:
                with ui.row().classes("w-full justify-start gap-3 items-end"):
                    render_avatar(False)
                    ui.spinner("dots", size="lg").classes("text-indigo-500")

        error_row.set_visibility(snapshot.error is not None)
        error_label.set_text(snapshot.error.message if snapshot.error else "")
        if snapshot.can_send:
            send_btn.enable()
        else:
            send_btn.disable()

    async def send_message() -> None:
        text = input_field.value or ""
        input_field.value = ""
        try:
            await chat.submit(text)
        except ChatError as e:
            # Already shown on the error banner; keep what the user typed
            logger.debug(f"Submission rejected: {e}")
            input_field.value = text

    # === UI Layout ===
    with ui.column().classes("w-full max-w-3xl mx-auto h-screen p-4 gap-0"):
        with ui.row().classes(
            "w-full px-5 py-4 items-center justify-between bg-indigo-600 rounded-t-xl"
        ):
            with ui.row().classes("items-center gap-3"):
                ui.icon("description").classes("text-white text-2xl")
                ui.label(document_name or "Document").classes("text-white font-semibold")
                state_icon = ui.icon("circle")
                state_label = ui.label().classes("text-xs text-white/80")

        with ui.row().classes("w-full px-4 py-2 items-center bg-red-50") as error_row:
            error_label = ui.label().classes("text-sm text-red-700 flex-grow")
            ui.button(icon="close", on_click=chat.dismiss_error).props("flat round dense")

        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")

        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t"):
            input_field = (
                ui.textarea(placeholder="Ask a question about the document...")
                .props("autogrow borderless dense rows=1")
                .classes("flex-grow")
                .on("keydown.enter.prevent", send_message)
            )
            send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")

    chat.subscribe(render)
    render(chat.snapshot())
    background_tasks.create(chat.open(), name=f"chat-session-{session_id}")
