import streamlit as st

from service_tracker.state import AppContext


def account_nav(ctx: AppContext) -> None:
    user = ctx.session.current_user
    with st.sidebar:
        st.markdown("---")
        if ctx.session.is_loading:
            st.caption("Loading account...")
            return
        if user is None:
            st.page_link("streamlit_app.py", label="Sign In", icon="🔐")
            st.page_link("pages/20_Sign_Up.py", label="Sign Up", icon="📝")
            return
        st.markdown("**👤 Signed in as:**")
        st.markdown(f"📧 {user.email}")
        if st.button("🚪 Sign Out"):
            ctx.session.sign_out()
            st.rerun()
        st.markdown("---")
