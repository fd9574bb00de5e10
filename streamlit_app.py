import streamlit as st
import plotly.graph_objects as go
from dotenv import load_dotenv

from core.activity import ActivityTimer, spread_activities
from core.cohorts import cohort_label
from core.exceptions import FetchFailure, InvalidSelection
from core.services.dashboard_service import DashboardService
from core.timeline import axis_ticks

load_dotenv()

# Page configuration
st.set_page_config(
    page_title="HCP Switching Dashboard",
    page_icon="📉",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
    <style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        padding: 1rem 0;
        border-bottom: 3px solid #1f77b4;
        margin-bottom: 2rem;
    }
    .info-box {
        background-color: #fff3cd;
        border: 1px solid #ffc107;
        border-radius: 0.5rem;
        padding: 1rem;
        margin: 1rem 0;
    }
    .activity-line {
        padding: 0.25rem 0.5rem;
        border-left: 3px solid #4caf50;
        margin-bottom: 0.25rem;
    }
    </style>
""", unsafe_allow_html=True)

BADGE_ICONS = {'high': '🔴', 'medium': '🟠', 'low': '🟢'}
VERDICT_ICONS = {'proven': '✅', 'likely': '🟢', 'possible': '🟡', 'unlikely': '🟠', 'disproven': '❌'}
STAGES = ['Observe', 'Investigate', 'Synthesize']

# Initialize session state
if 'service' not in st.session_state:
    st.session_state.service = DashboardService()

if 'stage_timers' not in st.session_state:
    st.session_state.stage_timers = {}


def build_timeline_figure(overview):
    """Stacked survivor area per cohort with event markers"""
    timeline = overview['timeline']
    months, labels = axis_ticks(timeline)

    fig = go.Figure()
    for cohort in overview['cohorts']:
        fig.add_trace(go.Scatter(
            x=months,
            y=[point.counts.get(cohort['cohort'], 0) for point in timeline],
            name=cohort['label'],
            mode='lines',
            stackgroup='survivors',
            line=dict(color=cohort['color'], width=0.5),
        ))

    for aligned in overview['aligned_events']:
        fig.add_vline(x=aligned.month, line_dash='dot', line_color='#999')
        fig.add_annotation(
            x=aligned.month,
            y=1.02,
            yref='paper',
            text=aligned.event.event_title,
            showarrow=False,
            textangle=-30,
            font=dict(size=10),
        )

    fig.update_layout(
        title=f"{overview['target_product']} patients still on therapy",
        xaxis=dict(title="Month", type='category', tickvals=months, ticktext=labels),
        yaxis_title="Patients",
        hovermode='x unified',
        height=450,
    )
    return fig


def display_overview(service, hcp_id):
    overview = service.get_overview(hcp_id)
    hcp = overview['hcp']

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("HCP", hcp.name)
        st.caption(f"{hcp.specialty} · {hcp.hospital}")
    with col2:
        badge = overview['risk_badge']
        st.metric("Switch Risk", f"{BADGE_ICONS[badge]} {hcp.switch_risk_score}")
    with col3:
        if overview['status'] == 'ok':
            st.metric("Overall Switch Rate", f"{overview['overall_switch_rate']}%")

    if overview['status'] == 'empty':
        st.info(f"📭 {overview['reason']}")
        return

    st.plotly_chart(build_timeline_figure(overview), use_container_width=True, key="timeline_chart")

    st.subheader("📉 Switching by Cohort")
    cols = st.columns(min(len(overview['cohort_summaries']), 3))
    for idx, summary in enumerate(overview['cohort_summaries'].values()):
        with cols[idx % 3]:
            st.markdown(f"**{cohort_label(summary.cohort)}**")
            st.markdown(f"- Switched: `{summary.switched}/{summary.total_patients}` ({summary.switch_rate}%)")
            st.markdown(f"- Switch period: `{summary.switch_period}`")

    if overview['overlay_markers']:
        with st.expander(f"📌 Key Events ({len(overview['overlay_markers'])})"):
            for marker in overview['overlay_markers']:
                event = marker['event']
                st.markdown(f"- **{event.event_title}** ({event.event_date:%b %d, %Y})")


def stage_messages(stage, results, view):
    if stage == 'Observe':
        return [
            ('analyst', f"Correlating {len(results.all_hypotheses)} candidate signals with switching events"),
            ('analyst', "Signal correlation summary ready"),
        ]
    if stage == 'Investigate':
        return [
            ('analyst', f"{r.hypothesis.title}: {r.final_confidence:.0f}% confidence")
            for r in results.all_hypotheses
        ]
    return [
        ('synthesizer', f"{len(results.proven_hypotheses)} hypotheses proven, {len(results.ruled_out)} ruled out"),
        ('synthesizer', f"Preselected for review: {', '.join(view['preselected_ids']) or 'none'}"),
    ]


def display_stage_activity(stage, results, view):
    """Reveal the stage's activity log against elapsed time"""
    timer_key = f"{results.session_id}:{stage}"
    timers = st.session_state.stage_timers

    if timer_key not in timers:
        timers[timer_key] = ActivityTimer(spread_activities(stage_messages(stage, results, view)))
        timers[timer_key].restart()

    reveal = timers[timer_key].poll()
    st.progress(int(reveal.progress))
    for activity in reveal.visible:
        st.markdown(
            f'<div class="activity-line"><strong>{activity.agent}</strong>: {activity.message}</div>',
            unsafe_allow_html=True
        )

    if not reveal.complete:
        if st.button("Refresh", key=f"refresh_{timer_key}"):
            st.rerun()
    return reveal.complete


def display_confirmation_form(service, hcp_id, results, view):
    options = [r.id for r in results.all_hypotheses]
    titles = {r.id: f"{VERDICT_ICONS[r.verdict.value]} {r.hypothesis.title} ({r.final_confidence:.0f}%)"
              for r in results.all_hypotheses}

    with st.form("confirm_form"):
        selected = st.multiselect(
            "Confirm root causes",
            options=options,
            default=[r.id for r in results.confirmed_hypotheses] or view['preselected_ids'],
            format_func=lambda hypothesis_id: titles[hypothesis_id],
        )
        notes = st.text_area("SME notes", value=results.sme_notes)
        submitted = st.form_submit_button("Confirm", type="primary")

    if submitted:
        try:
            outcome = service.confirm_investigation(hcp_id, selected, notes)
        except InvalidSelection as e:
            st.error(f"❌ {e}")
            return
        st.success(f"✓ {outcome['confirmed_count']} root cause(s) confirmed")
        st.rerun()


def display_investigation(service, hcp_id):
    view = service.get_investigation(hcp_id)
    results = view['results']

    if not results.has_investigation:
        st.markdown('<div class="info-box">No investigation yet for this HCP.</div>', unsafe_allow_html=True)
        if st.button("🔍 Start Investigation", type="primary"):
            with st.spinner("Generating hypotheses..."):
                service.start_investigation(hcp_id)
            st.rerun()
        return

    tabs = st.tabs(STAGES)
    completed = True
    for stage, tab in zip(STAGES, tabs):
        with tab:
            if not completed:
                st.caption("Waiting for the previous stage")
                continue
            completed = display_stage_activity(stage, results, view)

    st.subheader("🧪 Hypotheses")
    for result in results.all_hypotheses:
        with st.expander(f"{VERDICT_ICONS[result.verdict.value]} {result.hypothesis.title} · {result.verdict.value}"):
            st.markdown(result.hypothesis.description)
            if result.hypothesis.causal_chain:
                st.markdown(" → ".join(result.hypothesis.causal_chain))
            for evidence in result.hypothesis.evidence:
                marker = "➕" if evidence.supports_hypothesis else "➖"
                st.markdown(f"- {marker} *{evidence.source}*: {evidence.finding}")
            if result.reasoning:
                st.caption(result.reasoning)

    if completed:
        display_confirmation_form(service, hcp_id, results, view)

    if st.button("🔄 Re-run Investigation"):
        st.session_state.stage_timers = {}
        service.start_investigation(hcp_id)
        st.rerun()


def display_strategies(service, hcp_id):
    view = service.get_strategy_view(hcp_id)

    if view['status'] == 'not_ready':
        st.markdown(
            f'<div class="info-box"><strong>{view["title"]}</strong><br>{view["guidance"]}</div>',
            unsafe_allow_html=True
        )
        st.caption(f"Next step: {view['action_label']} (Investigation tab)")
        return

    if view['status'] == 'generating':
        st.info("⏳ Generating strategies from the confirmed root causes...")
        if st.button("Check again"):
            st.rerun()
        return

    st.markdown(f"Based on **{len(view['confirmed_hypotheses'])}** confirmed root cause(s)")
    st.json(view['nba'])


# Main UI
st.markdown('<div class="main-header">📉 HCP Switching Dashboard</div>', unsafe_allow_html=True)

# Sidebar
with st.sidebar:
    st.title("HCP")
    hcp_id = int(st.number_input("HCP id", min_value=1, value=1, step=1))
    page = st.radio("View", ["Overview", "Investigation", "Strategies"])

service = st.session_state.service

try:
    if page == "Overview":
        display_overview(service, hcp_id)
    elif page == "Investigation":
        display_investigation(service, hcp_id)
    else:
        display_strategies(service, hcp_id)
except FetchFailure as e:
    st.error(f"❌ Failed to load data: {e}")

# Footer
st.markdown("---")
st.markdown(
    '<div style="text-align: center; color: #666; padding: 1rem;">Powered by Streamlit & Plotly</div>',
    unsafe_allow_html=True
)
