"""Interactive CLI application."""
import logging
import os
import time
from dataclasses import replace
from datetime import date

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.prompt import Prompt
from rich.progress import Progress, BarColumn, TextColumn

from study_cycle.db import init_db, DEFAULT_DB_PATH
from study_cycle.cycle import cycle_day_for, regenerate_plan
from study_cycle.exams import CUSTOM_EXAM_ID, custom_subjects, get_exam_type, load_exam_types, subjects_for_exam
from study_cycle.models import FOCUS_MODES, MASTERY_LEVELS, PLAN_TYPES, CycleConfig, StudyPlan
from study_cycle.planner import build_plan, days_until_exam
from study_cycle.pomodoro import BREAK, STUDY, PomodoroTimer, format_clock
from study_cycle.stats import format_minutes, plan_adherence, progress_stats, recent_sessions, subject_breakdown
from study_cycle.storage import (
    PersistenceError, clear_sessions, delete_plan, get_active_plan, get_sessions, list_plans, load_plan,
    load_pomodoro_settings, record_session, rename_plan, save_plan, save_pomodoro_settings, set_active_plan,
)
from study_cycle.topics import add_topics, find_subject, set_topic_completed, topic_progress, update_subject

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user abandons a multi-step flow to go back to the menu."""


def session_prompt(prompt: str, choices: list[str] | None = None, default: str | None = None) -> str:
    """Prompt that raises SessionExitRequested on 'q' or 'menu' and re-asks until a valid choice."""
    while True:
        if default is None:
            value = Prompt.ask(prompt)
        else:
            value = Prompt.ask(prompt, default=default)
        value = (value or "").strip()
        if value.lower() in EXIT_WORDS:
            raise SessionExitRequested()
        if choices is None or value in choices:
            return value
        console.print(f"[red]Please choose one of: {', '.join(choices)}[/red]")


def session_int_prompt(prompt: str, choices: list[str] | None = None, default: int | None = None) -> int:
    while True:
        value = session_prompt(prompt, choices=choices, default=None if default is None else str(default))
        try:
            return int(value)
        except ValueError:
            console.print("[red]Please enter a whole number.[/red]")


def setup_logging() -> None:
    level = os.environ.get("STUDY_CYCLE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Study Cycle Planner[/bold]\n[dim]Rotating study plans with a Pomodoro timer[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("new", "Create a new study plan"),
        ("plan", "View the current plan"),
        ("config", "Adjust the cycle and regenerate"),
        ("topics", "Add topics or mark them done"),
        ("timer", "Start a Pomodoro study session"),
        ("history", "Recent study sessions"),
        ("clear", "Delete the session history"),
        ("stats", "Progress statistics"),
        ("plans", "Load, rename or delete saved plans"),
        ("settings", "Timer settings"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def persist_plan(db_path: str, plan: StudyPlan) -> bool:
    """Save and activate a plan. Failures are reported; the in-memory plan stays usable."""
    try:
        save_plan(db_path, plan)
        set_active_plan(db_path, plan.id)
    except PersistenceError as e:
        console.print(f"[red]Could not save plan: {e}[/red]")
        console.print("[yellow]The plan is still available for this session.[/yellow]")
        return False
    return True


def current_day_index(plan: StudyPlan, today: date | None = None) -> int:
    """Days since the plan's first cycle day, 0 on the day it was created."""
    today = today or date.today()
    return max(0, (today - plan.created_on).days)


def _ask_exam_date() -> date | None:
    while True:
        raw = session_prompt("Exam date (YYYY-MM-DD, blank to skip)", default="")
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            console.print("[red]Use the YYYY-MM-DD format.[/red]")


def cmd_new(db_path: str) -> StudyPlan | None:
    exams = load_exam_types()
    console.print("\n[bold]Choose an exam[/bold]")
    for exam in exams:
        console.print(f"  [cyan]{exam.id:<16}[/cyan] {exam.name} [dim]{exam.description}[/dim]")
    console.print(f"  [cyan]{CUSTOM_EXAM_ID:<16}[/cyan] Pick my own subjects")
    exam_id = session_prompt("Exam", choices=[e.id for e in exams] + [CUSTOM_EXAM_ID], default=exams[0].id)
    exam = get_exam_type(exam_id, exams)

    exam_date = _ask_exam_date()

    if exam is None:
        subjects = []
        while not subjects:
            raw = session_prompt("Subjects (comma separated)")
            subjects = custom_subjects(raw.split(","))
            if not subjects:
                console.print("[red]Enter at least one subject.[/red]")
    else:
        subjects = subjects_for_exam(exam)

    if _ask_bool("Add topics to your subjects now?", False):
        subjects = [
            add_topics(s, session_prompt(f"  Topics for {s.name} (comma separated)", default="").split(","))
            for s in subjects
        ]

    console.print("\n[bold]How well do you know each subject?[/bold]")
    levels = {}
    for subject in subjects:
        levels[subject.name] = session_prompt(
            f"  {subject.name}", choices=list(MASTERY_LEVELS), default="intermediate",
        )

    default_hours = int(exam.recommended_hours) if exam and exam.recommended_hours else 20
    weekly_hours = session_int_prompt("Weekly study hours", default=default_hours)
    plan_type = session_prompt("Plan type", choices=list(PLAN_TYPES), default="cycle")
    name = session_prompt("Plan name", default=exam.name if exam else "My plan")

    plan = build_plan(
        subjects, levels, weekly_hours, CycleConfig(), plan_type=plan_type,
        exam_date=exam_date, exam_id=None if exam is None else exam.id, name=name,
    )
    persist_plan(db_path, plan)
    console.print(f"[green]Plan created with {len(subjects)} subjects.[/green]")
    return plan


def render_plan(plan: StudyPlan, today_index: int | None = None) -> Table:
    if plan.type == "schedule":
        table = Table(title="Weekly Schedule")
        table.add_column("Day")
        table.add_column("Subjects")
        table.add_column("Hours", justify="right")
        for day in plan.weekly:
            names = ", ".join(f"{e.name} ({e.duration}, {e.priority})" for e in day.subjects)
            table.add_row(day.day, names or "[dim]Rest[/dim]", f"{day.total_planned_hours:.1f}")
        return table

    table = Table(title="14-Day Study Cycle")
    table.add_column("Day", justify="right")
    table.add_column("Weekday")
    table.add_column("Subjects")
    table.add_column("Hours", justify="right")
    current = cycle_day_for(plan, today_index) if today_index is not None else None
    for day in plan.cycle:
        names = ", ".join(f"{t.subject} ({t.duration_hours:.1f}h)" for t in day.tasks)
        marker = " ←" if current is not None and day.day == current.day else ""
        table.add_row(str(day.day), day.day_name + marker, names or "[dim]Rest[/dim]", day.duration)
    return table


def show_topic_progress(plan: StudyPlan):
    subjects = [s for s in plan.subjects if s.topics]
    if not subjects:
        return
    console.print("\n[bold]Topics[/bold]")
    for subject in subjects:
        progress = topic_progress(subject)
        console.print(f"  [{subject.color}]{subject.name}[/{subject.color}]: {progress['completed']} of "
                      f"{progress['total']} topics completed ({progress['percentage']}%)")


def cmd_plan(plan: StudyPlan):
    header = f"{plan.name or 'Unnamed plan'}: {len(plan.subjects)} subjects, {plan.total_hours:g}h/week"
    remaining = days_until_exam(plan.exam_date)
    if remaining is not None:
        header += f", {remaining} days until the exam"
    console.print(Panel(header, title="Current Plan", border_style="blue"))
    console.print(render_plan(plan, current_day_index(plan)))
    if plan.focus_areas:
        console.print(f"\n  [yellow]Focus areas: {', '.join(plan.focus_areas)}[/yellow]")
    show_topic_progress(plan)


def _ask_bool(prompt: str, current: bool) -> bool:
    return session_prompt(prompt, choices=["y", "n"], default="y" if current else "n") == "y"


def cmd_topics(db_path: str, plan: StudyPlan) -> StudyPlan:
    """Add topics to one subject or toggle one topic's completed flag."""
    if not plan.subjects:
        console.print("[yellow]This plan has no subjects.[/yellow]")
        return plan
    names = [s.name for s in plan.subjects]
    subject = find_subject(plan, session_prompt("Subject", choices=names, default=names[0]))

    table = Table(title=f"{subject.name} Topics")
    table.add_column("#", justify="right")
    table.add_column("Topic")
    table.add_column("Status")
    for i, topic in enumerate(subject.topics, 1):
        table.add_row(str(i), topic.name, "[green]Done[/green]" if topic.completed else "[dim]Open[/dim]")
    if subject.topics:
        console.print(table)
    else:
        console.print(f"[dim]No topics for {subject.name} yet.[/dim]")

    numbers = [str(i) for i in range(1, len(subject.topics) + 1)]
    choice = session_prompt("Topic # to toggle, 'add' for new topics, blank to go back",
                            choices=numbers + ["add", ""], default="")
    if not choice:
        return plan
    if choice == "add":
        raw = session_prompt("New topics (comma separated)")
        updated = update_subject(plan, add_topics(subject, raw.split(",")))
    else:
        topic = subject.topics[int(choice) - 1]
        updated = set_topic_completed(plan, subject.name, topic.id, not topic.completed)
    persist_plan(db_path, updated)
    progress = topic_progress(find_subject(updated, subject.name))
    console.print(f"[green]{subject.name}: {progress['completed']} of {progress['total']} topics completed.[/green]")
    return updated


def cmd_config(db_path: str, plan: StudyPlan) -> StudyPlan:
    if plan.type != "cycle":
        console.print("[yellow]Cycle settings only apply to cycle plans. Use 'new' to build one.[/yellow]")
        return plan
    cfg = plan.config
    console.print("\n[bold]Cycle Configuration[/bold]")
    force_all = _ask_bool("Include every subject in the rotation?", cfg.force_all_subjects)
    per_cycle = cfg.subjects_per_cycle
    if not force_all:
        per_cycle = session_int_prompt("Subjects per cycle", default=min(per_cycle, len(plan.subjects)))
    focus_mode = session_prompt("Focus mode", choices=list(FOCUS_MODES), default=cfg.focus_mode)
    avoid = _ask_bool("Avoid the same subject on consecutive days?", cfg.avoid_consecutive)
    config = replace(
        cfg, force_all_subjects=force_all, subjects_per_cycle=per_cycle,
        focus_mode=focus_mode, avoid_consecutive=avoid,
    )
    updated = regenerate_plan(plan, config)
    persist_plan(db_path, updated)
    console.print("[green]Cycle regenerated.[/green]")
    return updated


def run_timer(db_path: str, timer: PomodoroTimer, subject: str, topic: str | None = None) -> int:
    """Run one study phase and its break in real time. Returns the number of sessions saved."""
    timer.start(subject, topic)
    saved = 0
    phase = timer.mode
    with Progress(TextColumn("{task.description}"), BarColumn(), TextColumn("{task.fields[clock]}"),
                  console=console) as progress:
        task = progress.add_task(f"Studying {subject}", total=timer.remaining, clock=format_clock(timer.remaining))
        try:
            while True:
                if not timer.running:
                    if timer.mode == STUDY:
                        break
                    # breaks start straight away in the CLI
                    timer.resume()
                time.sleep(1)
                for session in timer.tick(1):
                    record_session(db_path, session)
                    saved += 1
                if timer.mode != phase:
                    phase = timer.mode
                    label = "Break" if phase == BREAK else f"Studying {subject}"
                    progress.reset(task, total=max(1, timer.remaining), description=label)
                else:
                    progress.advance(task)
                progress.update(task, clock=format_clock(timer.remaining))
        except KeyboardInterrupt:
            session = timer.stop()
            if session is not None:
                record_session(db_path, session)
                saved += 1
            console.print("\n[yellow]Timer stopped.[/yellow]")
    return saved


def cmd_timer(db_path: str, plan: StudyPlan | None):
    names = [s.name for s in plan.subjects] if plan else []
    suggestion = None
    if plan and plan.cycle:
        today = cycle_day_for(plan, current_day_index(plan))
        if today and today.tasks:
            suggestion = today.tasks[0].subject
            console.print(f"[cyan]Today: {', '.join(t.subject for t in today.tasks)}[/cyan]")
    if names:
        subject = session_prompt("Subject", choices=names, default=suggestion or names[0])
    else:
        subject = session_prompt("Subject")
    chosen = find_subject(plan, subject) if plan else None
    open_topics = [t.name for t in chosen.topics if not t.completed] if chosen else []
    if open_topics:
        console.print(f"[dim]Open topics: {', '.join(open_topics)}[/dim]")
        topic = session_prompt("Topic (blank for none)", choices=open_topics + [""], default=open_topics[0]) or None
    else:
        topic = session_prompt("Topic (optional)", default="") or None
    timer = PomodoroTimer(load_pomodoro_settings(db_path))
    console.print("[dim]Press Ctrl+C to stop early.[/dim]")
    saved = run_timer(db_path, timer, subject, topic)
    console.print(f"[green]{saved} session(s) recorded.[/green]")


def cmd_history(db_path: str):
    sessions = recent_sessions(get_sessions(db_path), limit=15)
    if not sessions:
        console.print("[yellow]No study sessions yet.[/yellow]")
        return
    table = Table(title="Recent Sessions")
    table.add_column("Date")
    table.add_column("Subject", style="cyan")
    table.add_column("Topic")
    table.add_column("Time", justify="right")
    table.add_column("Status")
    for s in sessions:
        status = "[green]Completed[/green]" if s.completed else "[yellow]Interrupted[/yellow]"
        table.add_row(s.start_time.strftime("%Y-%m-%d %H:%M"), s.subject, s.topic or "",
                      format_minutes(s.duration), status)
    console.print(table)


def cmd_stats(db_path: str, plan: StudyPlan | None):
    sessions = get_sessions(db_path)
    stats = progress_stats(sessions)
    console.print(Panel(
        f"Today: [bold]{format_minutes(stats['today_time'])}[/bold] ({stats['today_completed']} completed)  |  "
        f"This week: [bold]{format_minutes(stats['week_time'])}[/bold] ({stats['week_completed']} completed)  |  "
        f"Total: [bold]{format_minutes(stats['total_time'])}[/bold] ({stats['completed_sessions']} completed)",
        title="Study Progress", border_style="blue",
    ))
    rows = subject_breakdown(sessions, plan.subjects if plan else [])
    if rows:
        table = Table(title="By Subject")
        table.add_column("Subject")
        table.add_column("Time", justify="right")
        table.add_column("Share", justify="right")
        for r in rows:
            table.add_row(f"[{r['color']}]{r['subject']}[/{r['color']}]", format_minutes(r["minutes"]),
                          f"{r['percentage']}%")
        console.print(table)
    if stats["topic_time"]:
        table = Table(title="By Topic")
        table.add_column("Subject - Topic")
        table.add_column("Time", justify="right")
        for key, minutes in sorted(stats["topic_time"].items(), key=lambda kv: kv[1], reverse=True):
            table.add_row(key, format_minutes(minutes))
        console.print(table)
    if plan:
        show_topic_progress(plan)
    if plan and plan.cycle:
        adherence = plan_adherence(plan, sessions, current_day_index(plan))
        console.print(f"\n  Cycle day {adherence['day']} ({adherence['day_name']}): "
                      f"{adherence['studied_hours']:.1f}h of {adherence['planned_hours']:.1f}h "
                      f"([bold]{adherence['percentage']}%[/bold])")


def cmd_clear(db_path: str):
    if not _ask_bool("Delete every recorded study session?", False):
        console.print("[dim]History kept.[/dim]")
        return
    clear_sessions(db_path)
    console.print("[green]Session history cleared.[/green]")


def cmd_plans(db_path: str, current: StudyPlan | None = None) -> StudyPlan | None:
    """Load, rename or delete a saved plan. Returns the plan that is active afterwards."""
    plans = list_plans(db_path)
    if not plans:
        console.print("[yellow]No saved plans.[/yellow]")
        return current
    table = Table(title="Saved Plans")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Exam")
    table.add_column("Subjects", justify="right")
    table.add_column("Hours/week", justify="right")
    for i, p in enumerate(plans, 1):
        table.add_row(str(i), p["name"] or "[dim]unnamed[/dim]", p["type"] or "?", p["exam_id"] or "custom",
                      str(p["subjects"]), f"{p['total_hours'] or 0:g}")
    console.print(table)
    choice = session_int_prompt("Plan", choices=[str(i) for i in range(1, len(plans) + 1)])
    summary = plans[choice - 1]
    is_current = current is not None and current.id == summary["id"]
    action = session_prompt("Action", choices=["load", "rename", "delete"], default="load")

    if action == "delete":
        if not _ask_bool("Delete this plan?", False):
            return current
        delete_plan(db_path, summary["id"])
        console.print("[green]Plan deleted.[/green]")
        return None if is_current else current

    if action == "rename":
        name = session_prompt("New name", default=summary["name"] or None)
        renamed = rename_plan(db_path, summary["id"], name)
        if renamed is None:
            console.print("[red]That plan is no longer stored.[/red]")
            return current
        console.print(f"[green]Renamed to {renamed.name}.[/green]")
        return renamed if is_current else current

    plan = load_plan(db_path, summary["id"])
    if plan is None:
        console.print("[red]That plan is no longer stored.[/red]")
        return current
    set_active_plan(db_path, plan.id)
    console.print(f"[green]Loaded plan with {len(plan.subjects)} subjects.[/green]")
    return plan


def cmd_settings(db_path: str):
    settings = load_pomodoro_settings(db_path)
    study = session_int_prompt("Study minutes", default=settings.study_time // 60)
    short = session_int_prompt("Short break minutes", default=settings.break_time // 60)
    long_ = session_int_prompt("Long break minutes", default=settings.long_break_time // 60)
    every = session_int_prompt("Sessions until long break", default=settings.sessions_until_long_break)
    updated = replace(
        settings, study_time=max(1, study) * 60, break_time=max(0, short) * 60,
        long_break_time=max(0, long_) * 60, sessions_until_long_break=max(1, every),
    )
    save_pomodoro_settings(db_path, updated)
    console.print("[green]Timer settings saved.[/green]")


def main():
    setup_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    plan = None
    try:
        plan = get_active_plan(db_path)
    except PersistenceError as e:
        console.print(f"[red]Could not load the saved plan: {e}[/red]")

    show_welcome()

    while True:
        show_menu()
        default = "plan" if plan else "new"
        choice = Prompt.ask("\n[bold]>[/bold]", default=default).strip().lower()
        try:
            if choice == "new":
                plan = cmd_new(db_path) or plan
            elif choice in ("plan", "config", "topics") and plan is None:
                console.print("[yellow]No plan yet. Use 'new' to create one.[/yellow]")
            elif choice == "plan":
                cmd_plan(plan)
            elif choice == "config":
                plan = cmd_config(db_path, plan)
            elif choice == "topics":
                plan = cmd_topics(db_path, plan)
            elif choice == "timer":
                cmd_timer(db_path, plan)
            elif choice == "history":
                cmd_history(db_path)
            elif choice == "clear":
                cmd_clear(db_path)
            elif choice == "stats":
                cmd_stats(db_path, plan)
            elif choice == "plans":
                plan = cmd_plans(db_path, plan)
            elif choice == "settings":
                cmd_settings(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exam![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to the menu.[/dim]")
        except PersistenceError as e:
            console.print(f"[red]Storage error: {e}[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
