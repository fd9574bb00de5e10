from dotenv import load_dotenv

from core.cohorts import cohort_label
from core.exceptions import DashboardError, InvalidSelection
from core.gate import strategy_readiness
from core.month_keys import month_label
from core.services.dashboard_service import DashboardService
from investigation.graph import graph
from investigation.sessions import get_session_registry

load_dotenv()

VERDICT_ICONS = {
    'proven': '✅',
    'likely': '🟢',
    'possible': '🟡',
    'unlikely': '🟠',
    'disproven': '❌',
}


def print_section(title, content=""):
    print(f"\n{'='*80}")
    print(f"{title}")
    print(f"{'='*80}")
    if content:
        print(content)


def print_node_output(node_name, output_data):
    print(f"\n[DEBUG] Node: {node_name}")
    print(f"{'─'*80}")

    if isinstance(output_data, dict):
        for key, value in output_data.items():
            if key in ['workflow', 'execution_path']:
                continue
            if key == 'results':
                if value:
                    print(f"  {key}: {len(value)} items")
            elif value is not None and value != [] and value != {}:
                if isinstance(value, (str, int, float, bool)):
                    print(f"  {key}: {value}")
                elif isinstance(value, list):
                    print(f"  {key}: {', '.join(str(v) for v in value)}")
    print(f"{'─'*80}")


def format_timeline(overview):
    if overview['status'] == 'empty':
        return f"📭 {overview['reason']}"

    cohorts = [c['cohort'] for c in overview['cohorts']]
    header = f"{'Month':<8}" + "".join(f"{cohort_label(c)[:12]:>14}" for c in cohorts) + f"{'Total':>8}"
    lines = [header, "─" * len(header)]

    events_by_index = {}
    for aligned in overview['aligned_events']:
        events_by_index.setdefault(aligned.month_index, []).append(aligned.event.event_title)

    for index, point in enumerate(overview['timeline']):
        row = f"{month_label(point.month):<8}"
        row += "".join(f"{point.counts.get(c, 0):>14}" for c in cohorts)
        row += f"{point.total:>8}"
        if index in events_by_index:
            row += f"   ◆ {'; '.join(events_by_index[index])}"
        lines.append(row)

    lines.append("\n📉 Switching by cohort:")
    for summary in overview['cohort_summaries'].values():
        lines.append(
            f"  • {cohort_label(summary.cohort)}: {summary.switched}/{summary.total_patients} switched "
            f"({summary.switch_rate}%), period {summary.switch_period}"
        )
    lines.append(f"  Overall switch rate: {overview['overall_switch_rate']}%")

    return "\n".join(lines)


def format_verdicts(results):
    if not results:
        return "No hypotheses evaluated yet."

    lines = []
    for result in results:
        icon = VERDICT_ICONS.get(result.verdict.value, '•')
        lines.append(
            f"  {icon} [{result.id}] {result.hypothesis.title}: "
            f"{result.verdict.value} ({result.final_confidence:.0f}%)"
        )
    return "\n".join(lines)


def format_readiness(readiness):
    if readiness.ready:
        return "🔓 Strategies unlocked"
    return f"🔒 {readiness.title}: {readiness.guidance}\n   → {readiness.action_label}"


def show_overview(service, hcp_id):
    overview = service.get_overview(hcp_id)
    hcp = overview['hcp']
    print_section(
        f"HCP {hcp.id}: {hcp.name}",
        f"{hcp.specialty} · {hcp.hospital}\n"
        f"Switch risk: {hcp.switch_risk_score} ({overview['risk_badge'].upper()})"
    )
    print_section(f"{overview['target_product']} RETENTION BY COHORT", format_timeline(overview))


def show_investigation(service, hcp_id):
    view = service.get_investigation(hcp_id)
    results = view['results']
    print_section("INVESTIGATION", format_verdicts(results.all_hypotheses))
    if results.has_investigation:
        print(f"\n  Preselected for confirmation: {', '.join(view['preselected_ids']) or 'none'}")
        if results.confirmed_hypotheses:
            print(f"  Confirmed: {', '.join(r.id for r in results.confirmed_hypotheses)}")
    print(f"\n{format_readiness(view['readiness'])}")


def run_pipeline(service, hcp_id):
    """Replay the service's verdicts through a local staged workflow"""
    results = service.investigation_repo.get_results(hcp_id)
    if not results.all_hypotheses:
        print("\n⚠️  No hypotheses available. Run 'investigate <hcp_id>' first.\n")
        return

    workflow = get_session_registry().start_new(hcp_id)
    state = {
        'workflow': workflow,
        'signal_summary_ready': True,
        'results': results.all_hypotheses,
        'execution_path': []
    }

    print_section("PROCESSING")
    for event in graph.stream(state):
        for node_name, node_output in event.items():
            print(f"→ {node_name}")
            print_node_output(node_name, node_output)

    snapshot = workflow.snapshot()
    print_section(f"SESSION {workflow.session_id}", format_verdicts(snapshot.all_hypotheses))
    print(f"\n{format_readiness(strategy_readiness(snapshot))}")


def show_strategies(service, hcp_id):
    view = service.get_strategy_view(hcp_id)
    if view['status'] == 'not_ready':
        print_section("STRATEGIES", f"🔒 {view['title']}: {view['guidance']}\n   → {view['action_label']}")
    elif view['status'] == 'generating':
        print_section("STRATEGIES", "⏳ Generating strategies... try again shortly.")
    else:
        nba = view['nba']
        lines = [f"Based on {len(view['confirmed_hypotheses'])} confirmed root cause(s)"]
        for key, value in nba.items():
            if isinstance(value, (str, int, float)):
                lines.append(f"  • {key}: {value}")
        print_section("STRATEGIES", "\n".join(lines))


def confirm(service, hcp_id, ids_text, notes):
    ids = [part.strip() for part in ids_text.split(",") if part.strip()]
    try:
        outcome = service.confirm_investigation(hcp_id, ids, notes)
    except InvalidSelection as e:
        print(f"\n❌ {e}")
        return
    print(f"\n✓ Confirmed {outcome['confirmed_count']} root cause(s): {', '.join(outcome['confirmed_ids'])}")


def main():
    print_section("HCP SWITCHING DASHBOARD",
                  "Inspect switching timelines and investigations.\nType 'help' for commands, 'quit' to exit.\n")

    service = DashboardService()

    while True:
        try:
            user_input = input("\n🗣️  > ").strip()

            if not user_input:
                continue

            if user_input.lower() in ['quit', 'exit', 'q']:
                print("\n👋 Goodbye!\n")
                break

            if user_input.lower() == 'help':
                print("\n📚 Commands:")
                commands = [
                    "overview <hcp_id>",
                    "investigation <hcp_id>",
                    "investigate <hcp_id>            (start a new investigation)",
                    "pipeline <hcp_id>               (run the staged workflow locally)",
                    "confirm <hcp_id> <ids> [notes]  (ids comma separated)",
                    "strategies <hcp_id>",
                ]
                for command in commands:
                    print(f"  • {command}")
                continue

            parts = user_input.split(maxsplit=3)
            command = parts[0].lower()
            if len(parts) < 2 or not parts[1].isdigit():
                print("\n⚠️  Expected: <command> <hcp_id>. Type 'help' for commands.")
                continue
            hcp_id = int(parts[1])

            if command == 'overview':
                show_overview(service, hcp_id)
            elif command == 'investigation':
                show_investigation(service, hcp_id)
            elif command == 'investigate':
                service.start_investigation(hcp_id)
                show_investigation(service, hcp_id)
            elif command == 'pipeline':
                run_pipeline(service, hcp_id)
            elif command == 'confirm':
                if len(parts) < 3:
                    print("\n⚠️  Expected: confirm <hcp_id> <ids> [notes]")
                    continue
                confirm(service, hcp_id, parts[2], parts[3] if len(parts) > 3 else "")
            elif command == 'strategies':
                show_strategies(service, hcp_id)
            else:
                print(f"\n⚠️  Unknown command '{command}'. Type 'help' for commands.")

        except KeyboardInterrupt:
            print("\n\n👋 Goodbye!\n")
            break
        except DashboardError as e:
            print(f"\n❌ Error: {str(e)}")


if __name__ == "__main__":
    main()
