import streamlit as st

from service_tracker.state import init_state
from service_tracker.ui.landing import auth_form
from service_tracker.ui.nav import account_nav

st.set_page_config(page_title="Sign Up - Service Tracker", page_icon="📝", layout="wide")

ctx = init_state()
account_nav(ctx)

if ctx.session.is_loading:
    st.info("Loading...")
    st.stop()

if ctx.session.is_authenticated:
    # Already signed in
    st.switch_page("pages/10_Service_Tracker.py")

st.title("📝 Create an Account")
st.markdown("### Sign up to start tracking your services")

_, mid, _ = st.columns([1, 2, 1])
with mid:
    if auth_form(ctx.session, mode="sign_up"):
        st.switch_page("pages/10_Service_Tracker.py")
    st.page_link("streamlit_app.py", label="Already have an account? Sign in", icon="🔐")
