import logging

import plotly.graph_objects as go
import streamlit as st

import config
from data_logger import log_answer, log_result
from persona_data import ContentError, load_archetypes, load_questions
from persona_engine import AXES, effective_weight, score_answers

config.configure_logging()
logger = logging.getLogger(__name__)


# ============================================================
# SESSION STATE INITIALISATION
# ============================================================

if "index" not in st.session_state:
    st.session_state["index"] = 0  # position in the question list

# question id -> "A" / "B"; skipped questions are simply not here
if "answers" not in st.session_state:
    st.session_state["answers"] = {}

if "result_logged" not in st.session_state:
    st.session_state["result_logged"] = False

if "open_archetype" not in st.session_state:
    st.session_state["open_archetype"] = None


# ============================================================
# LOAD CSS
# ============================================================

def load_css():
    try:
        with open("assets/styles.css") as f:
            st.markdown(f"<style>{f.read()}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        st.warning("⚠ Missing CSS file: assets/styles.css")


load_css()


# ============================================================
# LOAD CONTENT (SHARED, READ-ONLY ACROSS SESSIONS)
# ============================================================

@st.cache_resource
def get_questions(path):
    return load_questions(path)


@st.cache_resource
def get_archetypes(path):
    return load_archetypes(path)


try:
    questions = get_questions(config.QUESTIONS_PATH)
    archetypes = get_archetypes(config.ARCHETYPES_PATH)
except ContentError as e:
    logger.error("Content failed to load: %s", e)
    st.error(f"❌ {e}")
    st.stop()


def reset_quiz():
    st.session_state["index"] = 0
    st.session_state["answers"] = {}
    st.session_state["result_logged"] = False
    st.session_state["open_archetype"] = None


# ============================================================
# HERO + CONSENT
# ============================================================

st.markdown("""
<div class="hero">
<h1 class="hero-title">Persona Quiz</h1>
<p class="hero-sub">Twelve types, four axes, one click per question.</p>
</div>
""", unsafe_allow_html=True)

consent = st.sidebar.checkbox(
    "I agree to anonymous answer logging (no personal data).",
    value=True,
    key="consent",
)

index = st.session_state["index"]
done = index >= len(questions)

st.progress(min(1.0, index / max(1, len(questions))))


# ============================================================
# QUESTION FLOW
# ============================================================

def handle_pick(question, key):
    st.session_state["answers"][question["id"]] = key
    st.session_state["index"] += 1

    if st.session_state.get("consent", True):
        option = next(o for o in question["options"] if o["key"] == key)
        try:
            log_answer(
                question_id=question["id"],
                axis=question["axis"],
                version=question.get("version", 1),
                weight=effective_weight(question, option),
                pick=key,
            )
        except OSError as e:
            logger.warning("Answer logging failed: %s", e)


def handle_back():
    if st.session_state["index"] == 0:
        return
    st.session_state["result_logged"] = False
    st.session_state["index"] -= 1
    previous = questions[st.session_state["index"]]
    st.session_state["answers"].pop(previous["id"], None)


def handle_skip():
    st.session_state["index"] += 1


if not done:
    q = questions[index]

    st.markdown(f"### Question {index + 1} of {len(questions)}")
    st.markdown(f"""
    <div class="quiz-question">
      <p><b>{q["question"]}</b></p>
    </div>
    """, unsafe_allow_html=True)

    for option in q["options"]:
        st.button(
            option["label"],
            key=f"pick_{q['id']}_{option['key']}",
            on_click=handle_pick,
            args=(q, option["key"]),
            use_container_width=True,
        )

    col1, col2, col3 = st.columns(3)
    with col1:
        st.button("⬅ Back", on_click=handle_back, disabled=index == 0)
    with col2:
        st.button("Skip ➜", on_click=handle_skip)
    with col3:
        st.button("Reset", on_click=reset_quiz)


# ============================================================
# RESULTS
# ============================================================

else:
    result = score_answers(
        st.session_state["answers"],
        questions,
        archetypes,
        method=config.NORMALIZATION,
    )

    primary_code = result.primary[0]
    primary = archetypes[primary_code]
    secondary = archetypes[result.secondary[0]] if result.secondary else None

    if consent and not st.session_state["result_logged"]:
        try:
            log_result(
                primary=primary_code,
                secondary=result.secondary[0] if result.secondary else "",
                conf=result.confidence,
                scores=result.sums,
            )
        except OSError as e:
            st.warning(f"Logging failed: {e}")
        st.session_state["result_logged"] = True

    # ----------------------------------------------
    # HERO CARD
    # ----------------------------------------------
    secondary_line = (
        f"<p><b>Secondary type:</b> {secondary['name']}</p>" if secondary else ""
    )
    st.markdown(f"""
    <div class="result-card">
    <h1>{primary["name"]}</h1>
    <p>{primary["summary"]}</p>
    {secondary_line}
    <p><b>Answered:</b> {result.answered} of {result.total}</p>
    </div>
    """, unsafe_allow_html=True)

    st.markdown(f"**Confidence:** {result.confidence:.2f}")
    st.progress(result.confidence)

    # ----------------------------------------------
    # RADAR CHART — TRAIT VECTOR
    # ----------------------------------------------
    vals = list(result.vector)
    vals_closed = vals + [vals[0]]
    dims_closed = list(AXES) + [AXES[0]]

    radar = go.Figure()
    radar.add_trace(go.Scatterpolar(
        r=vals_closed,
        theta=dims_closed,
        fill='toself',
        name="You",
    ))
    radar.add_trace(go.Scatterpolar(
        r=list(primary["centroid"]) + [primary["centroid"][0]],
        theta=dims_closed,
        name=primary["name"],
        line_dash="dot",
    ))
    radar.update_layout(
        polar=dict(radialaxis=dict(visible=True, range=[-1, 1])),
        showlegend=True,
        margin=dict(l=40, r=40, t=30, b=30),
    )
    st.plotly_chart(radar, use_container_width=True)

    # ----------------------------------------------
    # SIMILARITY RANKING
    # ----------------------------------------------
    bar_fig = go.Figure()
    bar_fig.add_trace(go.Bar(
        x=[archetypes[code]["name"] for code, _ in result.ranked],
        y=[score for _, score in result.ranked],
    ))
    bar_fig.update_layout(
        yaxis_title="Cosine similarity",
        xaxis_title="Persona",
        yaxis=dict(range=[-1, 1]),
    )
    st.plotly_chart(bar_fig, use_container_width=True)

    st.markdown("""
    - **Confidence** blends how clearly your top type beat the runner-up
      (70%) with how many questions you answered (30%).
    - **Radar chart** shows your position on each axis from -1 to +1.
    - **Similarity** is how closely each persona points the same way as you.
    """)

    col1, col2 = st.columns(2)
    with col1:
        st.button("⬅ Back to Questions", on_click=handle_back)
    with col2:
        st.button("🔄 Start Over", on_click=reset_quiz)


# ============================================================
# ARCHETYPE GRID (EXPLORE ALL TYPES)
# ============================================================

if done:
    st.markdown("<h2 style='text-align:center;'>Explore All Personas</h2>",
                unsafe_allow_html=True)

    cols = st.columns(3)

    for idx, (code, data) in enumerate(archetypes.items()):
        with cols[idx % 3]:
            if st.button(data["name"], key=f"arch_btn_{code}", use_container_width=True):
                if st.session_state["open_archetype"] == code:
                    st.session_state["open_archetype"] = None
                else:
                    st.session_state["open_archetype"] = code

    selected = st.session_state["open_archetype"]

    if selected is not None and selected in archetypes:
        info = archetypes[selected]
        centroid = ", ".join(f"{axis} {v:+.1f}" for axis, v in zip(AXES, info["centroid"]))
        st.markdown(f"""
        <div class="archetype-panel">
        <h2 style="text-align:center;">{info["name"]}</h2>
        <p>{info["summary"]}</p>
        <p><small>{centroid}</small></p>
        </div>
        """, unsafe_allow_html=True)
