"""Order Relay - Streamlit console

Run with: streamlit run streamlit_app.py
"""

import json
import os

import requests
import streamlit as st

from order_relay.core.orders import (
    MAX_ORDERS,
    MIN_ORDERS,
    generate_order_payloads,
    parse_edited_payloads,
    submit_orders,
    validate_target_url,
)
from order_relay.core.session import has_session

# Flask backend URL - use SERVER_PORT from .env or default to 8080
SERVER_PORT = os.getenv("SERVER_PORT", "8080")
BACKEND_URL = os.getenv("BACKEND_URL", f"http://localhost:{SERVER_PORT}")

st.set_page_config(
    page_title="Order Relay",
    page_icon="🧾",
    layout="wide"
)

st.title("🧾 Order Relay")

# One requests.Session per browser session keeps the auth cookie
if "http" not in st.session_state:
    st.session_state.http = requests.Session()
if "generated" not in st.session_state:
    st.session_state.generated = None
if "submit_log" not in st.session_state:
    st.session_state.submit_log = []

http: requests.Session = st.session_state.http

# ============================================================================
# SIDEBAR: Instructions
# ============================================================================
with st.sidebar:
    st.header("🚀 Quick Start")

    st.markdown("""
    ```bash
    # Terminal 1
    python -m order_relay.web.server

    # Terminal 2
    streamlit run streamlit_app.py
    ```

    ---

    ### Submitting
    1. Sign in on the **Login** tab
    2. Pick how many orders to generate
    3. Optionally edit the JSON
    4. Click **Submit orders**

    Orders are sent one at a time through `/api/order`.
    """)

    st.divider()

    st.caption("Order Relay v1.0")

tab_login, tab_orders = st.tabs([
    "🔐 Login",
    "🧾 Orders"
])

# ============================================================================
# TAB 1: LOGIN
# ============================================================================
with tab_login:
    st.header("Sign in")

    if has_session(http.cookies):
        st.success("✅ Signed in")
        if st.button("Sign out"):
            try:
                http.post(f"{BACKEND_URL}/api/logout", timeout=10)
            except requests.exceptions.RequestException as e:
                st.error(f"❌ Error: {e}")
            http.cookies.clear()
            st.rerun()
    else:
        with st.form("login"):
            username = st.text_input("Username")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")

        if submitted:
            try:
                response = http.post(
                    f"{BACKEND_URL}/api/login",
                    json={"username": username, "password": password},
                    timeout=10
                )
                if response.status_code == 200:
                    st.rerun()
                else:
                    st.error(f"❌ {response.json().get('error', response.text)}")
            except requests.exceptions.ConnectionError:
                st.error("❌ Backend not running. Start with: `python -m order_relay.web.server`")
            except requests.exceptions.RequestException as e:
                st.error(f"❌ Error: {e}")

# ============================================================================
# TAB 2: ORDERS
# ============================================================================
with tab_orders:
    if not has_session(http.cookies):
        st.warning("⚠️ Sign in on the Login tab first")
        st.stop()

    st.header("Create orders")

    col_count, col_url = st.columns(2)
    with col_count:
        count = st.number_input(
            f"Number of orders ({MIN_ORDERS}-{MAX_ORDERS})",
            min_value=MIN_ORDERS,
            max_value=MAX_ORDERS,
            value=1
        )
    with col_url:
        target_url = st.text_input(
            "Target URL (blank uses the server's API_BASE_URL)",
            placeholder="https://your-endpoint/order"
        )

    col_generate, col_download = st.columns(2)
    with col_generate:
        if st.button("Generate JSON"):
            st.session_state.generated = generate_order_payloads(count)
            st.session_state.submit_log = []
    with col_download:
        if st.session_state.generated:
            st.download_button(
                "Download JSON",
                data=json.dumps(st.session_state.generated, indent=2),
                file_name="orders.json",
                mime="application/json"
            )

    if st.session_state.generated is not None:
        edited = st.text_area(
            "Payloads (edit before submitting)",
            value=json.dumps(st.session_state.generated, indent=2),
            height=400
        )

        st.divider()

        if st.button("▶️ Submit orders", type="primary"):
            try:
                payloads = parse_edited_payloads(edited)
                target = validate_target_url(target_url)
            except ValueError as e:
                st.error(f"❌ {e}")
            else:
                st.session_state.generated = payloads
                st.session_state.submit_log = []
                progress = st.progress(0.0)
                with st.spinner("Submitting orders one by one..."):
                    for i, result in enumerate(submit_orders(http, BACKEND_URL, payloads, target), start=1):
                        st.session_state.submit_log.append(result)
                        progress.progress(i / len(payloads))
                ok_count = sum(1 for r in st.session_state.submit_log if r.ok)
                st.success(f"✅ Submitted {len(payloads)} orders ({ok_count} succeeded)")

    if st.session_state.submit_log:
        st.subheader("Results")
        for result in st.session_state.submit_log:
            if result.ok:
                st.write(f"✅ {result.log_line()}")
            else:
                st.write(f"❌ {result.log_line()}")
