import logging

import streamlit as st

from sevendays.core.settings import settings
from sevendays.core.storage import (
    JsonFileStore,
    clear_final_state,
    load_final_state,
    load_theme,
    save_theme,
)
from sevendays.core.state import is_terminal, survived
from sevendays.services.game_runner import Phase, TurnController
from sevendays.services.narrative import NarrativeClient
from sevendays.services.summarizer import fallback_summary, fallback_title

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)
st.set_page_config(page_title="Seven Days", layout="wide")

THEMES = ["Random", "Zombie outbreak", "Hospital blackout", "Flooded city", "Orbital station failure"]


def get_store() -> JsonFileStore:
    if "store" not in st.session_state:
        st.session_state.store = JsonFileStore()
    return st.session_state.store


def new_controller() -> TurnController:
    old = st.session_state.get("controller")
    if old is not None:
        old.shutdown()
    controller = TurnController(NarrativeClient(), get_store())
    st.session_state.controller = controller
    return controller


def go_to(screen: str) -> None:
    st.session_state.screen = screen
    st.rerun()


def display_factions(factions):
    st.subheader("🤝 Faction Trust")
    if not factions:
        st.caption("No factions yet.")
        return
    for faction in factions:
        st.write(f"**{faction.name}** {faction.trust}/100")
        st.progress(faction.trust / 100)


# ——— Screens ————————————————————————————————————————————

def start_screen():
    st.title("🌅 Seven Days")
    store = get_store()
    current = load_theme(store)
    theme = st.selectbox("Theme", THEMES, index=THEMES.index(current) if current in THEMES else 0)
    if st.button("▶️ Start Game"):
        save_theme(store, theme)
        controller = new_controller()
        with st.spinner("Setting the scene..."):
            fut = controller.start()
            if fut is not None:
                fut.result()
        go_to("game")


def game_screen():
    controller: TurnController = st.session_state.get("controller")
    if controller is None:
        go_to("start")
        return
    state = controller.state

    st.title("🌅 Seven Days")
    st.sidebar.write(f"- **Model:** `{settings.gemini_model}`")
    st.sidebar.write(f"- **Theme:** {state.selected_theme}")
    st.sidebar.write(f"- **Phase:** {controller.phase.value}")

    st.header(controller.day)
    if controller.error_message:
        st.error(controller.error_message)
        if not controller.choices and st.button("🔄 Retry"):
            with st.spinner("Setting the scene..."):
                fut = controller.start()
                if fut is not None:
                    fut.result()
            st.rerun()

    st.markdown(controller.situation_text)

    cols = st.columns(2)
    for i, choice in enumerate(controller.choices):
        if cols[i % 2].button(choice, key=f"choice_{state.turns_remaining}_{i}",
                              disabled=controller.phase != Phase.IDLE):
            with st.spinner("The story unfolds..."):
                fut = controller.submit_choice(i)
                if fut is not None:
                    fut.result()
            if controller.phase == Phase.TERMINAL:
                go_to("result")
            st.rerun()

    st.sidebar.subheader("🛡️ Stability")
    st.sidebar.progress(state.stability / 100, text=f"{state.stability}/100")
    with st.sidebar:
        display_factions(state.faction_trust.factions)


def result_screen():
    store = get_store()
    controller: TurnController = st.session_state.get("controller")
    final = load_final_state(store)
    if final is None:
        st.error("Could not load the final game state.")
    else:
        summary = controller.summary if controller else None
        if summary is None:
            # fresh session: rebuild the template text from the stored state
            is_survived = survived(final, is_terminal(final))
            st.title(fallback_title(is_survived))
            st.markdown(fallback_summary(final, is_survived))
        else:
            st.title(summary.title)
            st.markdown(summary.summary)

        st.subheader("🛡️ Final Stability")
        st.progress(final.stability / 100, text=f"{final.stability}/100")
        display_factions(final.faction_trust.factions)
        st.write(f"**Food:** {final.resources.food} ({final.resources.food / 3:.1f} days)")

    left, right = st.columns(2)
    if left.button("🏠 Main Menu"):
        clear_final_state(store)
        go_to("start")
    if right.button("🔁 Restart"):
        clear_final_state(store)
        controller = new_controller()
        with st.spinner("Setting the scene..."):
            fut = controller.start()
            if fut is not None:
                fut.result()
        go_to("game")


def main():
    screen = st.session_state.get("screen", "start")
    if screen == "game":
        game_screen()
    elif screen == "result":
        result_screen()
    else:
        start_screen()

if __name__ == "__main__":
    main()
