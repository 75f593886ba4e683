# app.py

import base64

import streamlit as st
from farmwise.agents.planner import DEFAULT_SEASON, SEASONS
from farmwise.core.errors import FarmWiseError
from farmwise.core.request_builder import SUPPORTED_IMAGE_TYPES, split_data_uri, to_data_uri
from farmwise.session import FarmWiseSession

# --- Page & State Configuration ---
st.set_page_config(page_title="FarmWise", page_icon="🌱", layout="wide")

REMINDER_CATEGORIES = ["Planting", "Watering", "Fertilizing", "Harvesting"]

def initialize_session_state():
    """Initializes all necessary session state variables."""
    # One FarmWiseSession per browser session: it reads the store once, at start
    if "farmwise" not in st.session_state:
        st.session_state.farmwise = FarmWiseSession()
    if "uploader_key" not in st.session_state:
        st.session_state.uploader_key = 0

def image_bytes(data_uri: str) -> bytes:
    return base64.b64decode(split_data_uri(data_uri).data)

def save_change(action, *args) -> bool:
    """Runs a store mutation from the UI; a failed write becomes a notice instead of a crash."""
    try:
        action(*args)
        return True
    except FarmWiseError as e:
        st.error(f"Could not save your change: {e}")
        return False

# --- Cosmetic Login Gate ---
def show_login_page():
    """The login form only flips the persisted authenticated flag; it is not a security boundary."""
    farmwise = st.session_state.farmwise
    st.title("Welcome to FarmWise 🌱")
    with st.form("login_form"):
        st.text_input("Username", key="login_username")
        st.text_input("Password", type="password", key="login_password")
        if st.form_submit_button("Login"):
            if save_change(farmwise.preferences.set_authenticated, True):
                st.rerun()

# --- Tabs ---
def show_analysis_tab(kind: str):
    farmwise = st.session_state.farmwise
    uploaded_file = st.file_uploader(
        f"Capture a {kind} sample",
        type=[t.split("/")[1] for t in SUPPORTED_IMAGE_TYPES] + ["jpg"],
        key=f"{kind}_uploader_{st.session_state.uploader_key}",
    )
    if uploaded_file:
        st.image(uploaded_file, width=300)
    elif farmwise.previews[kind]:
        st.image(image_bytes(farmwise.previews[kind]), width=300)

    if st.button("Initiate Scan", key=f"{kind}_scan", disabled=not uploaded_file or farmwise.analysis.is_busy(kind)):
        image = to_data_uri(uploaded_file.getvalue(), uploaded_file.type)
        with st.spinner("AI Processing..."):
            outcome = farmwise.analysis.invoke(image, kind)
        if not outcome.ok:
            st.error(outcome.message)

    result = farmwise.soil_result if kind == "soil" else farmwise.crop_result
    if result is None:
        st.info("Ready for Analysis")
        return

    left, right = st.columns([1, 2])
    with left:
        st.metric("Health Index", f"{result.health_score}%")
        st.subheader(result.quality)
    with right:
        st.markdown("**Expert Summary**")
        st.write(result.description)
    st.markdown("**Nutrient Distribution**")
    for nutrient in result.nutrients:
        st.progress(nutrient.value / 100, text=f"{nutrient.label}: {nutrient.value}%")
    st.markdown("**Action Plan**")
    for i, rec in enumerate(result.recommendations, start=1):
        st.write(f"{i}. {rec}")

def show_planner_tab():
    farmwise = st.session_state.farmwise
    season = st.selectbox("Season", SEASONS, index=SEASONS.index(DEFAULT_SEASON))
    if st.button("Get Recommendations", disabled=farmwise.planner.busy):
        with st.spinner("Planning your season..."):
            outcome = farmwise.planner.invoke(season)
        if not outcome.ok:
            st.error(outcome.message)

    for i, crop in enumerate(farmwise.recommendations):
        with st.container(border=True):
            st.subheader(f"{crop.name} · {crop.difficulty}")
            st.caption(f"{crop.duration} · {crop.suitability}")
            st.write(crop.reason)
            if st.button("Add to Reminders", key=f"accept_{i}_{crop.name}"):
                outcome = farmwise.accept_recommendation(crop)
                if outcome.ok:
                    st.success(f"Reminder added for {crop.name}")
                else:
                    st.error(outcome.message)

def show_advisor_tab():
    farmwise = st.session_state.farmwise
    for turn in farmwise.transcript:
        with st.chat_message("human" if turn.role == "user" else "ai", avatar="🧑‍🌾" if turn.role == "user" else "🌱"):
            st.markdown(turn.text)

    if prompt := st.chat_input("Ask about soil, pests, schemes...", disabled=farmwise.advisor.is_typing):
        with st.chat_message("human", avatar="🧑‍🌾"):
            st.markdown(prompt)
        with st.chat_message("ai", avatar="🌱"):
            placeholder = st.empty()
            placeholder.markdown("_typing..._")
            farmwise.advisor.invoke(prompt, on_update=placeholder.markdown)

    if farmwise.transcript and st.button("New conversation"):
        farmwise.reset_conversation()
        st.rerun()

def show_history_tab():
    farmwise = st.session_state.farmwise
    items = farmwise.activity_log.list()
    if not items:
        st.info("No activity yet.")
        return
    if st.button("Clear History", type="primary"):
        if save_change(farmwise.activity_log.clear):
            st.rerun()
    for item in items:
        with st.expander(f"{item.summary} · {item.timestamp}"):
            if item.image:
                st.image(image_bytes(item.image), width=200)
            if item.type == "planner":
                st.write(", ".join(c.name for c in item.data))
            else:
                st.write(f"Health Index: {item.data.health_score}%")
                st.write(item.data.description)
            if st.button("Open", key=f"open_{item.id}"):
                farmwise.restore(item)
                tab = "Planner" if item.type == "planner" else item.type.title()
                st.toast(f"Reopened in the {tab} tab")
                st.rerun()

def show_reminders_tab():
    farmwise = st.session_state.farmwise
    with st.form("reminder_form", clear_on_submit=True):
        title = st.text_input("Reminder title")
        category = st.selectbox("Category", REMINDER_CATEGORIES)
        on = st.date_input("Date")
        if st.form_submit_button("Add Reminder") and title.strip():
            save_change(farmwise.reminders.add, title, category, on.isoformat())

    for reminder in farmwise.reminders.for_display():
        done, label, delete = st.columns([1, 8, 1])
        with done:
            if st.checkbox("done", value=reminder.completed, key=f"done_{reminder.id}", label_visibility="collapsed") != reminder.completed:
                if save_change(farmwise.reminders.toggle, reminder.id):
                    st.rerun()
        with label:
            text = f"~~{reminder.title}~~" if reminder.completed else reminder.title
            st.markdown(f"{text}  \n`{reminder.category}` · {reminder.date}")
        with delete:
            if st.button("🗑", key=f"delete_{reminder.id}"):
                if save_change(farmwise.reminders.delete, reminder.id):
                    st.rerun()

# --- Main Interface ---
def show_main_interface():
    farmwise = st.session_state.farmwise
    with st.sidebar:
        st.header("FarmWise 🌱")
        dark_mode = st.toggle("Dark mode", value=farmwise.preferences.preferences.dark_mode)
        if dark_mode != farmwise.preferences.preferences.dark_mode:
            save_change(farmwise.preferences.set_dark_mode, dark_mode)
        if st.button("Logout"):
            if save_change(farmwise.preferences.set_authenticated, False):
                st.rerun()

    pending = farmwise.reminders.pending_count()
    reminders_label = f"Reminders ({pending})" if pending else "Reminders"
    soil, crop, planner, advisor, history, reminders = st.tabs(
        ["Soil", "Crop", "Planner", "Advisor", "History", reminders_label]
    )
    with soil:
        show_analysis_tab("soil")
    with crop:
        show_analysis_tab("crop")
    with planner:
        show_planner_tab()
    with advisor:
        show_advisor_tab()
    with history:
        show_history_tab()
    with reminders:
        show_reminders_tab()


# --- Application Entry Point ---
initialize_session_state()

if st.session_state.farmwise.preferences.preferences.authenticated:
    show_main_interface()
else:
    show_login_page()
