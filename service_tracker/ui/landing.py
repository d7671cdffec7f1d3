import logging

import streamlit as st

from service_tracker.errors import AuthError
from service_tracker.session import IdentitySession

REDIRECT_FLAG = "_sign_in_redirect_done"

log = logging.getLogger(__name__)


def auth_form(session: IdentitySession, mode: str = "sign_in") -> bool:
    """Render the sign-in or sign-up form. Returns True once the user is signed in."""
    signing_up = mode == "sign_up"
    with st.form(f"{mode}_form"):
        email = st.text_input("Email Address", placeholder="you@example.com").strip().lower()
        password = st.text_input("Password", type="password")
        confirm = st.text_input("Confirm Password", type="password") if signing_up else password
        submitted = st.form_submit_button("Sign Up" if signing_up else "Sign In", type="primary")

    if not submitted:
        return False
    if not email or not password:
        st.error("Please enter your email address and password")
        return False
    if signing_up and password != confirm:
        st.error("Passwords do not match")
        return False

    with st.spinner("Creating account..." if signing_up else "Signing in..."):
        try:
            if signing_up:
                session.sign_up(email, password)
            else:
                session.sign_in(email, password)
        except AuthError as exc:
            st.error(exc.message)
            return False
    st.session_state.pop(REDIRECT_FLAG, None)
    return True


def require_user(session: IdentitySession, sign_in_page: str = "streamlit_app.py") -> None:
    """Gate a page on an authenticated session; stops the script otherwise."""
    if session.is_loading:
        st.info("Loading...")
        st.stop()
    if session.is_authenticated:
        return
    if not st.session_state.get(REDIRECT_FLAG):
        st.session_state[REDIRECT_FLAG] = True
        st.switch_page(sign_in_page)
    st.warning("Please sign in first.")
    st.stop()
