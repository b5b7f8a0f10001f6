"""Streamlit UI for ZipLens."""

from __future__ import annotations

import streamlit as st

from ZipLens import password_store
from ZipLens.engines.base import BadPasswordError
from ZipLens.engines.zip_engine import ZipEngine
from ZipLens.identity import resolve_user_id
from ZipLens.models import OpenOutcome, OpenResult, OpenState, RecentFileRecord
from ZipLens.orchestrator import ArchiveListingOrchestrator
from ZipLens.recent_store import DEFAULT_STORE_PATH, JsonFileBackend, RecentFilesClient
from ZipLens.tree_builder import render_tree


def _qp(key: str, default: str = "") -> str:
    """Read a query parameter, returning *default* if absent."""
    params = st.query_params
    return params.get(key, default)


@st.cache_resource
def _recent_files_client(store_path: str) -> RecentFilesClient:
    # Shared across sessions so the backend lock serialises file writes
    return RecentFilesClient(JsonFileBackend(store_path))


def _orchestrator(user_id: str, recent_files: RecentFilesClient) -> ArchiveListingOrchestrator:
    """Return this session's orchestrator; it must survive reruns mid-flow."""
    orch = st.session_state.get("orchestrator")
    if orch is None or orch.user_id != user_id or orch.recent_files is not recent_files:
        orch = ArchiveListingOrchestrator(ZipEngine(), recent_files, user_id)
        st.session_state["orchestrator"] = orch
    return orch


def main() -> None:
    st.set_page_config(
        page_title="ZipLens",
        page_icon="🗜️",
        layout="wide",
    )

    # Hide Streamlit's default toolbar (Deploy, Stop, etc.)
    st.markdown(
        "<style>[data-testid='stToolbar'] { display: none; }</style>",
        unsafe_allow_html=True,
    )

    user_id = resolve_user_id(_qp("user") or None)
    recent_files = _recent_files_client(_qp("store") or str(DEFAULT_STORE_PATH))
    orch = _orchestrator(user_id, recent_files)

    # --- Header with settings popover ---
    header_left, header_right = st.columns([8, 1])
    with header_left:
        st.title("ZipLens")
    with header_right:
        st.markdown("<div style='height: 1.5rem'></div>", unsafe_allow_html=True)
        with st.popover("", use_container_width=True):
            st.subheader("Settings")
            st.text(f"User: {user_id}")
            remember = False
            if password_store.is_available():
                remember = st.checkbox(
                    "Remember archive passwords in OS keychain",
                    value=st.session_state.get("remember_passwords", False),
                    help="Passwords are stored securely in macOS Keychain or Windows Credential Manager.",
                )
                st.session_state["remember_passwords"] = remember

    st.caption("Browse the contents of a ZIP archive, including password-protected ones.")

    main_col, recent_col = st.columns([3, 1])

    with recent_col:
        reopen = _show_recent_files(recent_files.get_recent_files(user_id))

    with main_col:
        archive_path = st.text_input(
            "Archive path",
            value=_qp("archive"),
            placeholder="/path/to/archive.zip",
        )
        open_clicked = st.button("Open", type="primary", use_container_width=True)

        if reopen:
            _handle(orch.select(reopen), user_id, remember)
        elif open_clicked and archive_path.strip():
            _handle(orch.select(archive_path.strip()), user_id, remember)
        elif open_clicked:
            st.error("Please enter the path of a ZIP archive.")

        if orch.state is OpenState.AWAITING_PASSWORD:
            _password_form(orch, remember)

        if "result" in st.session_state:
            _show_result(st.session_state["result"])


def _handle(result: OpenResult, user_id: str, remember: bool) -> None:
    """Apply one orchestrator step to the page."""
    password = st.session_state.pop("pending_password", None)
    from_keychain = st.session_state.pop("password_from_keychain", False)

    if result.outcome is OpenOutcome.OPENED:
        if remember and password:
            password_store.save(user_id, result.archive_path, password)
        st.session_state["result"] = result
        st.rerun()
    elif result.outcome is OpenOutcome.FAILED:
        if isinstance(result.error, BadPasswordError) and from_keychain:
            password_store.delete(user_id, result.archive_path)
        st.error(str(result.error))
    # NEEDS_PASSWORD and ABANDONED leave the previous display untouched


def _password_form(orch: ArchiveListingOrchestrator, remember: bool) -> None:
    saved = password_store.load(orch.user_id, orch.pending_path) if remember else None
    with st.form("password_form"):
        st.warning(f"`{orch.pending_path}` is encrypted. Please enter the password.")
        password = st.text_input("Password", value=saved or "", type="password")
        submit_col, cancel_col = st.columns(2)
        submitted = submit_col.form_submit_button(
            "Unlock", type="primary", use_container_width=True
        )
        cancelled = cancel_col.form_submit_button("Cancel", use_container_width=True)

    if cancelled:
        orch.submit_password(None)
        st.rerun()
    elif submitted:
        st.session_state["pending_password"] = password
        st.session_state["password_from_keychain"] = bool(saved) and password == saved
        with st.spinner("Decrypting listing..."):
            result = orch.submit_password(password)
        _handle(result, orch.user_id, remember)


def _show_result(result: OpenResult) -> None:
    """Display the directory tree of the last opened archive."""
    files = [e for e in result.entries if not e.is_dir]
    st.subheader(result.archive_path)
    st.info(f"{len(files)} files.")

    _PREVIEW_MAX_LINES = 1000
    tree_lines = render_tree(result.tree).split("\n")
    if len(tree_lines) > _PREVIEW_MAX_LINES:
        st.code("\n".join(tree_lines[:_PREVIEW_MAX_LINES]), language=None)
        st.caption(
            f"Tree is truncated to {_PREVIEW_MAX_LINES:,} lines "
            f"(total {len(tree_lines):,} lines)."
        )
    else:
        st.code("\n".join(tree_lines) or "(empty archive)", language=None)


def _show_recent_files(records: list[RecentFileRecord]) -> str | None:
    """Render the recent list; return a path if the user asked to reopen it."""
    st.subheader("Recent files")
    if not records:
        st.caption("No recent files.")
        return None

    chosen = None
    for i, record in enumerate(records):
        accessed = record.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        if st.button(record.path, key=f"recent_{i}", use_container_width=True):
            chosen = record.path
        st.caption(f"Last accessed: {accessed}")
    return chosen


if __name__ == "__main__":
    main()
