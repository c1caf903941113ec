import logging
import threading
import time
import traceback
from datetime import datetime

import streamlit as st

from fxp_client.core import (
    ClientConfig,
    DataType,
    FtpClient,
    FxpError,
    FxpSessionNegotiator,
    HashAlgorithm,
    TransferVerifier,
    run_sync,
)

# Configure logging for Streamlit app
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


st.set_page_config(page_title="dFXP Client UI", layout="wide")

ROLES = ("source", "target")

# --- Helpers -----------------------------------------------------------------

# A lightweight wrapper to run blocking network calls in a thread and capture exceptions
def run_in_thread(fn, *args, **kwargs):
    result = {"value": None, "error": None}
    def target():
        try:
            result["value"] = fn(*args, **kwargs)
        except Exception as e:
            result["error"] = e
    t = threading.Thread(target=target)
    t.start()
    return t, result


def wait_for(t, label):
    with st.spinner(label):
        while t.is_alive():
            time.sleep(0.05)


def show_reply(reply):
    if reply.type in ("error", "unknown"):
        st.error(f"{reply.code} - {reply.message}")
    else:
        st.success(f"{reply.code} - {reply.message}")


def connection_form(role):
    st.header(role.capitalize())
    host = st.text_input("Host", value="127.0.0.1", key=f"{role}_host")
    port = st.number_input("Port", min_value=1, max_value=65535, value=21, key=f"{role}_port")
    user = st.text_input("User", value="anonymous", key=f"{role}_user")
    password = st.text_input("Password", type="password", key=f"{role}_password")
    timeout = st.number_input("Timeout (s)", min_value=1.0, max_value=60.0, value=10.0, key=f"{role}_timeout")

    if st.button("Connect", key=f"{role}_connect"):
        config = ClientConfig(host=host, port=int(port), user=user or None,
                              password=password or None, timeout=float(timeout))
        client = FtpClient(config)
        logger.info(f"[UI] Connecting {role} to {host}:{port}...")
        t, result = run_in_thread(run_sync, client.connect())
        wait_for(t, "Connecting...")
        if result["error"]:
            logger.error(f"[UI] {role} connection failed: {result['error']}")
            st.session_state[role] = None
            st.error(f"Connection failed: {result['error']}")
        else:
            st.session_state[role] = client
            st.success(f"Connected to {host}:{port}")

    client = st.session_state.get(role)
    if client is not None and st.button("Disconnect", key=f"{role}_disconnect"):
        session = st.session_state.get("session")
        if session is not None and session.involves(client):
            # the session cannot outlive one of its peers
            session.close()
            st.session_state["session"] = None
        try:
            run_sync(client.close())
            st.info("Disconnected")
        except Exception as e:
            logger.error(f"[UI] Error disconnecting {role}: {e}")
            st.error(f"Error disconnecting: {e}")
        st.session_state[role] = None


def history_panel(role):
    client = st.session_state.get(role)
    if client is None:
        st.info(f"No {role} history: not connected")
        return
    if st.button("Clear History", key=f"{role}_clear"):
        client.clear_history()
        st.rerun()
    for entry in reversed(client.get_history()[-100:]):
        t = entry.get("time")
        time_str = t.isoformat() if isinstance(t, datetime) else str(t)
        with st.expander(f"{time_str} — {entry.get('command')}"):
            parsed = entry.get("parsed")
            if parsed:
                st.write(f"Code: {parsed.code}")
                st.write(f"Message: {parsed.message}")
                st.write(f"Type: {parsed.type}")
            if entry.get("raw"):
                st.code(entry.get("raw"))
            if entry.get("error"):
                st.error("This entry had an error")


# --- UI ----------------------------------------------------------------------
st.title("dFXP — Server to Server Transfers")

for role in ROLES:
    st.session_state.setdefault(role, None)
st.session_state.setdefault("session", None)

with st.sidebar:
    for role in ROLES:
        connection_form(role)
        st.markdown("---")

source = st.session_state.get("source")
target = st.session_state.get("target")

col1, col2 = st.columns([3, 2])

with col1:
    st.subheader("FXP session")
    track_progress = st.checkbox("Open a progress connection to the target")
    data_type = st.selectbox("Data type", [t.name for t in DataType], index=1)

    if st.button("Open FXP session"):
        if source is None or target is None:
            st.error("Connect both the source and the target first.")
        else:
            old = st.session_state.get("session")
            if old is not None:
                old.close()
            # Negotiation uses the data type from each client's configuration
            for client in (source, target):
                client.config = client.config.with_changes(fxp_data_type=DataType[data_type])
            negotiator = FxpSessionNegotiator()
            t, result = run_in_thread(negotiator.negotiate, source, target, track_progress)
            wait_for(t, "Negotiating...")
            error = result["error"]
            if error:
                logger.error(f"[UI] FXP negotiation failed: {error}")
                partial = getattr(error, "session", None)
                if partial is not None:
                    partial.close()
                st.error(f"Negotiation failed: {error}")
            else:
                st.session_state["session"] = result["value"]
                st.success("Source instructed to connect to the target's passive endpoint. "
                           "Send STOR to the target and RETR to the source to start the transfer.")

    session = st.session_state.get("session")
    if session is not None:
        st.write(f"Source: {session.source!r}")
        st.write(f"Target: {session.target!r}")
        st.write(f"Progress: {session.progress!r}")
        if st.button("Close FXP session"):
            session.close()
            st.session_state["session"] = None

    st.subheader("Terminal")
    role = st.radio("Send to", ROLES, horizontal=True)
    cmd = st.text_input("Command", placeholder="e.g. STOR file.bin", key="cmd_input")
    if st.button("Run") and cmd:
        client = st.session_state.get(role)
        if client is None:
            st.error("Not connected. Connect first.")
        else:
            logger.info(f"[UI] Command executed on {role}: {cmd}")
            try:
                show_reply(run_sync(client.execute(cmd.strip())))
            except Exception:
                logger.error(f"[UI] Unhandled exception: {traceback.format_exc()}")
                st.error(f"Unhandled exception:\n{traceback.format_exc()}")

    st.subheader("Verify transfer")
    local_path = st.text_input("Local file", key="verify_local")
    remote_path = st.text_input("Remote file on the target", key="verify_remote")
    algorithm = st.selectbox("Algorithm", [a.name for a in HashAlgorithm])
    if st.button("Verify"):
        if target is None:
            st.error("Connect the target first.")
        else:
            verifier = TransferVerifier(target, warn=st.warning)
            try:
                outcome = verifier.verify(local_path, remote_path, HashAlgorithm[algorithm])
                if outcome.succeeded:
                    st.success(f"Verification {outcome.value}")
                else:
                    st.error(f"Verification {outcome.value}")
            except FxpError as e:
                st.error(str(e))

with col2:
    st.subheader("History")
    tabs = st.tabs([role.capitalize() for role in ROLES])
    for tab, role in zip(tabs, ROLES):
        with tab:
            history_panel(role)


# Footer
st.markdown("---")
st.caption("dFXP Streamlit UI — negotiate server to server transfers and verify them.")
