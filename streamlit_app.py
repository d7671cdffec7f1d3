import streamlit as st

from service_tracker.state import init_state
from service_tracker.ui.landing import auth_form
from service_tracker.ui.nav import account_nav
from service_tracker.ui.notify import flush_notifications

# Configure page
st.set_page_config(
    page_title="Service Tracker",
    page_icon="🧾",
    layout="wide"
)

ctx = init_state()
flush_notifications()
account_nav(ctx)

if ctx.session.is_loading:
    st.info("Loading...")
    st.stop()

if not ctx.session.is_authenticated:
    st.markdown("""<style>.block-container {padding-top: 6rem !important;}</style>""", unsafe_allow_html=True)
    st.title("🔐 Service Tracker")
    st.markdown("### Welcome back! Sign in to continue")

    _, mid, _ = st.columns([1, 2, 1])
    with mid:
        if auth_form(ctx.session, mode="sign_in"):
            st.switch_page("pages/10_Service_Tracker.py")
        st.page_link("pages/20_Sign_Up.py", label="Don't have an account? Sign up", icon="📝")
else:
    # User is authenticated - go straight to the tracker
    st.title("🧾 Service Tracker")
    st.write(f"Signed in as {ctx.session.current_user.email}.")
    st.page_link("pages/10_Service_Tracker.py", label="Open your service records", icon="📋")
