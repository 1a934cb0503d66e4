# ui.py
import streamlit as st


def header(title: str, subtitle: str = "Fuel Point Management System"):
    """Top bar with title and user pill."""
    mid, right = st.columns([0.76, 0.24])

    with mid:
        st.markdown(f"<h2 style='margin:0'>{title}</h2>", unsafe_allow_html=True)
        st.caption(subtitle)

    with right:
        user = st.session_state.get("auth_user")
        if user:
            who = user.get("full_name") or user.get("name") or user.get("email") or "user"
            pill = f"{who} · {user['role']}"
        else:
            pill = "Guest"
        st.markdown(
            f"<div style='text-align:right;border:1px solid #334155;"
            f"padding:6px 10px;border-radius:999px;display:inline-block'>{pill}</div>",
            unsafe_allow_html=True,
        )

    st.divider()
