"""
AI Model Ranker Interactive UI - Streamlit app for comparing and ranking model responses
Run with: streamlit run modelranker_ui.py
"""

import asyncio
import base64

import pandas as pd
import streamlit as st

from modelranker.config import MIN_SELECTED_MODELS, MAX_SELECTED_MODELS, REFEREE_MODEL, is_error_text
from modelranker.generate import generate_all
from modelranker.models import MODEL_IDS, get_display_name
from modelranker.providers import close_clients
from modelranker.run import can_generate, can_evaluate, run_evaluation, alignment

# Page config
st.set_page_config(
    page_title="AI Model Ranker",
    page_icon="🏆",
    layout="wide"
)

st.title("🏆 AI Model Ranker")
st.caption("Test, compare, and rank multimodal AI responses")

# Session state initialization
if "responses" not in st.session_state:
    st.session_state.responses = []  # list[ModelResponse]
if "evaluation" not in st.session_state:
    st.session_state.evaluation = None
if "prompt" not in st.session_state:
    st.session_state.prompt = ""

referee_name = get_display_name(REFEREE_MODEL)


def to_data_url(uploaded_file) -> str:
    """Encode an uploaded image as a base64 data URL."""
    media_type = uploaded_file.type or "image/jpeg"
    data = base64.b64encode(uploaded_file.getvalue()).decode("ascii")
    return f"data:{media_type};base64,{data}"


def run_async(coro):
    # Each rerun gets a fresh event loop; its clients are closed before the loop goes away
    async def scoped():
        try:
            return await coro
        finally:
            await close_clients()

    return asyncio.run(scoped())


def build_scores_df(average_scores: list[dict]) -> pd.DataFrame:
    rows = sorted(average_scores, key=lambda s: s["avgScore"], reverse=True)
    return pd.DataFrame([
        {
            "Rank": rank,
            "Model": get_display_name(s["model"]),
            "Avg Score": f"{s['avgScore']:.1f}",
            "Scores": ", ".join(f"{x:.0f}" for x in s["scores"]) or "-",
        }
        for rank, s in enumerate(rows, 1)
    ])


# Model selection
selected_models = st.multiselect(
    f"Select {MIN_SELECTED_MODELS}-{MAX_SELECTED_MODELS} models",
    options=MODEL_IDS,
    format_func=get_display_name,
    max_selections=MAX_SELECTED_MODELS,
)
st.caption(f"Selected: {len(selected_models)}/{MAX_SELECTED_MODELS}")

prompt_input = st.text_area(
    "prompt",
    value=st.session_state.prompt,
    height=120,
    placeholder="Enter your prompt here...",
    label_visibility="collapsed"
)

uploaded = st.file_uploader("📷 Add Images (Optional)", type=["png", "jpg", "jpeg", "gif", "webp"],
                            accept_multiple_files=True)
images = [to_data_url(f) for f in uploaded or []]
if images:
    st.image([f.getvalue() for f in uploaded], width=120)

# Action buttons
btn_col1, btn_col2 = st.columns(2)
with btn_col1:
    generate_button = st.button(
        "🚀 Generate Responses",
        type="primary",
        disabled=not can_generate(selected_models, prompt_input),
    )
with btn_col2:
    evaluate_button = st.button(
        "⭐ Evaluate & Rank Responses",
        disabled=not can_evaluate(st.session_state.responses),
    )

# Process: Generate
if generate_button and can_generate(selected_models, prompt_input):
    st.session_state.prompt = prompt_input
    st.session_state.evaluation = None
    with st.spinner("Generating responses..."):
        st.session_state.responses = run_async(generate_all(selected_models, prompt_input, images))
    st.rerun()

# Process: Evaluate
if evaluate_button and can_evaluate(st.session_state.responses):
    with st.spinner("Evaluating & ranking..."):
        st.session_state.evaluation = run_async(
            run_evaluation(st.session_state.responses, st.session_state.prompt))
    st.rerun()

# Display responses
if st.session_state.responses:
    st.divider()
    st.subheader("📦 Responses")
    cols = st.columns(2)
    for idx, resp in enumerate(st.session_state.responses):
        with cols[idx % 2]:
            st.markdown(f"**{get_display_name(resp.model)}** · {resp.duration:.1f}s")
            if is_error_text(resp.response):
                st.error(resp.response)
            else:
                st.markdown(resp.response)

# Display evaluation
evaluation = st.session_state.evaluation
if evaluation:
    st.divider()
    score_col, rank_col = st.columns(2)

    with score_col:
        st.markdown("### 📊 Average Scores")
        st.caption("Mean of the scores every model gave each response")
        st.dataframe(build_scores_df(evaluation["averageScores"]), use_container_width=True, hide_index=True)

        failed = [e for e in evaluation["evaluations"] if e["evaluation"].get("error")]
        for e in failed:
            st.warning(f"{get_display_name(e['evaluator'])}: {e['evaluation']['error']}")

    with rank_col:
        st.markdown(f"### 🏆 {referee_name} Final Ranking")
        final_ranking = evaluation["finalRanking"]
        medals = {1: "🥇", 2: "🥈", 3: "🥉"}
        for entry in final_ranking.get("ranking", []):
            st.markdown(f"{medals.get(entry['rank'], '#' + str(entry['rank']))} "
                        f"**{get_display_name(entry['model'])}**  \n{entry['reasoning']}")
        if final_ranking.get("error"):
            st.warning(f"Final ranking unavailable: {final_ranking['error']}")

    # User choice
    st.divider()
    st.subheader("🤔 Which response do you think is best?")
    user_choice = st.radio(
        "Your pick",
        options=[r.model for r in st.session_state.responses],
        format_func=get_display_name,
        index=None,
        horizontal=True,
        label_visibility="collapsed",
    )

    status, rank = alignment(user_choice, evaluation["finalRanking"])
    if status == "perfect":
        st.success(f"**Perfect Alignment!** Your choice matches {referee_name}'s #1 ranking.")
    elif status == "partial":
        st.info(f"**Partial Alignment:** Your choice was ranked #{rank} by {referee_name}.")
    elif status == "different":
        st.warning(f"**Different Opinion:** Your choice wasn't in {referee_name}'s top 3.")

# Footer
st.caption("AI Model Ranker - multi-model generation with peer cross-evaluation")
