import streamlit as st

from service_tracker.state import init_state
from service_tracker.ui.entry import batch_entry, single_entry
from service_tracker.ui.landing import require_user
from service_tracker.ui.nav import account_nav
from service_tracker.ui.notify import flush_notifications
from service_tracker.ui.records_view import records_view

st.set_page_config(page_title="Service Tracker", page_icon="🧾", layout="wide")

ctx = init_state()
flush_notifications()

# Gate: require login
require_user(ctx.session)
account_nav(ctx)

st.title("🧾 Service Tracker")
st.caption("Manage and track your service records efficiently.")

st.header("Add Service Records")
st.caption("Enter the employee and date once, then add one entry per service performed.")
batch_entry(ctx)

with st.expander("Quick add a single record"):
    single_entry(ctx)

st.divider()
records_view(ctx)
