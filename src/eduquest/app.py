"""Interactive CLI application."""
import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from eduquest import quests
from eduquest.achievements import ALL_ACHIEVEMENTS
from eduquest.courses import append_lesson, create_course, get_course, get_courses, seed_courses
from eduquest.dashboard import activity_heatmap, get_heat_color, profile_summary
from eduquest.db import resolve_db_path
from eduquest.errors import EduQuestError, OutOfHeartsError, TutorError
from eduquest.evaluator import new_submission, shuffled
from eduquest.generator import generate_course, openai_completion, read_file_content
from eduquest.models import (
    FILL_IN_THE_BLANK, MATCHING, MULTIPLE_CHOICE, QUIZ, VIDEO, FillInTheBlankAnswer,
    MatchingAnswer, MultipleChoiceAnswer,
)
from eduquest.progression import LessonResult, Progression
from eduquest.review import build_review_lesson, get_weak_courses
from eduquest.store import ProgressStore
from eduquest.tutor import TutorChat, openai_chat

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user leaves a lesson mid-way."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = Prompt.ask(prompt, choices=list(choices) + list(EXIT_WORDS), show_choices=False)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return int(answer)


def setup_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def show_welcome(progression: Progression):
    console.print(Panel(
        f"[bold]EduQuest[/bold]\n[dim]Welcome back, {progression.user.name}![/dim]",
        title="Welcome", border_style="cyan",
    ))


def show_stats(progression: Progression):
    stats = progression.stats
    console.print(
        f"  [yellow]⭐ {stats.xp} XP[/yellow]  [orange1]🔥 {stats.streak}[/orange1]  "
        f"[red]❤ {stats.hearts}[/red]  [cyan]Level {progression.level.level}[/cyan]"
    )


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("learn", "Start or review a lesson"),
        ("courses", "Browse courses"),
        ("quests", "Today's quests"),
        ("achievements", "Your achievements"),
        ("profile", "Level, streak and activity"),
        ("review", "Practise your weak questions"),
        ("generate", "Create a course from a file"),
        ("refill", "Refill hearts"),
        ("tutor", "Ask the AI tutor about your lesson"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


# --- Answer input ---


def ask_answer(question):
    if question.type == MULTIPLE_CHOICE:
        for i, option in enumerate(question.options, 1):
            console.print(f"  [cyan]{i})[/cyan] {option}")
        index = session_int_prompt("\nYour answer", [str(i) for i in range(1, len(question.options) + 1)])
        return MultipleChoiceAnswer(selected_index=index - 1)
    if question.type == FILL_IN_THE_BLANK:
        text = ""
        while not text.strip():
            text = session_prompt("\nYour answer")
        return FillInTheBlankAnswer(text=text)
    if question.type == MATCHING:
        answers = shuffled(question.answers)
        letters = [chr(ord("a") + i) for i in range(len(answers))]
        for letter, answer in zip(letters, answers):
            console.print(f"  [cyan]{letter})[/cyan] {answer.content}")
        submission = MatchingAnswer()
        # picking an answer twice moves it, so loop until every prompt is matched
        while len(submission.assignments) < len(question.prompts):
            for prompt in question.prompts:
                if prompt.id in submission.assignments:
                    continue
                letter = session_prompt(f"  {prompt.content} →", choices=letters + list(EXIT_WORDS), show_choices=False)
                submission.assign(prompt.id, answers[letters.index(letter)].id)
        return submission
    submission = new_submission(question)
    while submission.available:
        console.print("  Remaining: " + ", ".join(
            f"[cyan]{i})[/cyan] {item}" for i, item in enumerate(submission.available, 1)
        ))
        pick = session_int_prompt("  Next item", [str(i) for i in range(1, len(submission.available) + 1)])
        submission.place(submission.available[pick - 1])
    return submission


def show_result(result: LessonResult):
    lines = [f"[bold green]+{result.xp_earned} XP[/bold green]" + (" [dim](review)[/dim]" if result.was_review else "")]
    if result.perfect:
        lines.append("💯 Perfect score!")
    if result.leveled_up:
        lines.append(f"[bold cyan]Level up! You reached level {result.level_after}[/bold cyan]")
    for quest in result.completed_quests:
        lines.append(f"[yellow]Quest complete:[/yellow] {quest.title} (+{quest.reward} XP)")
    for achievement in result.new_achievements:
        lines.append(f"{achievement.icon} [magenta]{achievement.title}[/magenta] unlocked (+{achievement.reward} XP)")
    lines.append(f"🔥 Streak: {result.stats.streak}")
    console.print(Panel("\n".join(lines), title="Lesson Complete", border_style="green"))


async def run_lesson(progression: Progression, lesson) -> Optional[LessonResult]:
    session = progression.start_lesson(lesson)
    if session.is_review:
        console.print("[dim]Review mode: no hearts at stake.[/dim]")
    if lesson.type != QUIZ:
        if lesson.type == VIDEO:
            console.print(Panel(f"https://www.youtube.com/watch?v={lesson.video_id}", title=lesson.title))
        else:
            console.print(Panel(lesson.content or "", title=lesson.title))
        if not lesson.questions:
            choice = session_prompt("Complete lesson or mark as read?", choices=["complete", "read", "q"], default="complete")
            return await progression.finish(session, quick=choice == "read")

    while not session.is_complete:
        question = session.current_question
        console.print(f"\n[bold]Q{session.index + 1}/{len(lesson.questions)}.[/bold] {question.text}\n")
        submission = ask_answer(question)
        if await progression.submit(session, submission):
            console.print("[green]Correct![/green]")
        else:
            console.print("[red]Incorrect.[/red]" + ("" if session.is_quiz else " Try again."))
            if session.heart_lost:
                console.print(f"[red]❤ {session.hearts} hearts left[/red]")
        if session.is_locked:
            console.print("[bold red]You ran out of hearts![/bold red]")
            if Prompt.ask("Refill hearts to continue?", choices=["y", "n"], default="y") != "y":
                raise SessionExitRequested()
            await progression.refill_hearts(session)
        result = await progression.advance(session)
        if result:
            return result
    return None


# --- Commands ---


def pick_course(db_path: str):
    courses = get_courses(db_path)
    for i, course in enumerate(courses, 1):
        console.print(f"  [cyan]{i})[/cyan] {course.title}")
    index = session_int_prompt("Select course", [str(i) for i in range(1, len(courses) + 1)])
    return courses[index - 1]


async def cmd_learn(db_path: str, progression: Progression):
    course = pick_course(db_path)
    for i, lesson in enumerate(course.lessons, 1):
        mark = "[green]✓[/green]" if progression.is_completed(lesson.id) else " "
        console.print(f"  {mark} [cyan]{i})[/cyan] {lesson.title} [dim]{lesson.type.lower()}[/dim]")
    index = session_int_prompt("Select lesson", [str(i) for i in range(1, len(course.lessons) + 1)])
    try:
        result = await run_lesson(progression, course.lessons[index - 1])
    except OutOfHeartsError as e:
        console.print(f"[red]{e}[/red]")
        return
    if result:
        show_result(result)


def cmd_courses(db_path: str, progression: Progression):
    table = Table(title="Courses")
    table.add_column("Course", style="cyan")
    table.add_column("Lessons", justify="right")
    table.add_column("Done", justify="right")
    for course in get_courses(db_path):
        done = sum(1 for l in course.lessons if progression.is_completed(l.id))
        table.add_row(course.title, str(len(course.lessons)), f"{done}/{len(course.lessons)}")
    console.print(table)


def cmd_quests(progression: Progression):
    table = Table(title=f"Daily Quests: {quests.completion_percentage(progression.quests)}% done")
    table.add_column("Quest")
    table.add_column("Progress", justify="right")
    table.add_column("Reward", justify="right")
    for quest in progression.quests:
        status = "[green]✓[/green] " if quest.completed else ""
        table.add_row(f"{status}{quest.title}", f"{quest.progress}/{quest.target}", f"+{quest.reward} XP")
    console.print(table)
    console.print(f"  [yellow]+{quests.completed_rewards(progression.quests)} XP earned from quests today[/yellow]")


def cmd_achievements(progression: Progression):
    table = Table(title=f"Achievements ({len(progression.unlocked)}/{len(ALL_ACHIEVEMENTS)})")
    table.add_column("")
    table.add_column("Achievement")
    table.add_column("Reward", justify="right")
    for a in ALL_ACHIEVEMENTS:
        unlocked = a.id in progression.unlocked
        name = f"[bold]{a.title}[/bold]\n[dim]{a.description}[/dim]"
        table.add_row(a.icon if unlocked else "🔒", name, f"+{a.reward} XP")
    console.print(table)


async def cmd_profile(progression: Progression):
    summary = profile_summary(progression)
    console.print(Panel(
        f"[bold]{summary['name']}[/bold]  Level {summary['level']}\n"
        f"⭐ {summary['xp']} XP   🔥 {summary['streak']} day streak (x{summary['multiplier']})   ❤ {summary['hearts']}\n"
        f"📚 {summary['lessons_completed']} lessons   🏆 {summary['achievements_unlocked']}/{summary['achievements_total']} achievements",
        title="Profile", border_style="blue",
    ))
    with Progress(TextColumn("Level {task.fields[level]}"), BarColumn(), TextColumn("{task.completed:.0f}/{task.total:.0f} XP"),
                  console=console, transient=False) as bar:
        bar.add_task("level", total=summary["xp_for_next_level"], completed=summary["xp_in_level"], level=summary["level"])
    if summary["next_milestone"]:
        m = summary["next_milestone"]
        console.print(f"  Next milestone: {m.badge} {m.title} at {m.days} days (x{m.multiplier} XP)")
    heatmap = await activity_heatmap(progression.store, progression.user.id, days=84, today=progression.today)
    cells = "".join(f"[{get_heat_color(count)}]■[/]" for _, count in heatmap)
    console.print(f"\n  Activity (12 weeks): {cells}")


async def cmd_review(db_path: str, progression: Progression):
    history = await progression.store.get_answer_history(progression.user.id)
    weak = get_weak_courses(get_courses(db_path), history)
    if not weak:
        console.print("[green]No weak areas detected! Keep up the good work.[/green]")
        return
    table = Table(title="Weak Courses")
    table.add_column("Course")
    table.add_column("Errors", justify="right")
    for w in weak:
        table.add_row(w["course_title"], f"{w['errors']}/{w['total']} ({w['error_rate']}%)")
    console.print(table)
    course = get_course(db_path, weak[0]["course_id"])
    lesson = build_review_lesson(course, history)
    append_lesson(db_path, course.id, lesson)
    progression.courses = get_courses(db_path)
    console.print(f"[cyan]Added '{lesson.title}' to {course.title}[/cyan]")
    result = await run_lesson(progression, lesson)
    if result:
        show_result(result)


def cmd_generate(db_path: str, progression: Progression):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    with console.status("Generating course..."):
        course = generate_course(read_file_content(file_path), openai_completion())
    create_course(db_path, course)
    progression.courses.append(course)
    console.print(f"[green]Created '{course.title}' with {len(course.lessons)} lessons[/green]")


async def cmd_refill(progression: Progression):
    stats = await progression.refill_hearts()
    console.print(f"[red]❤ {stats.hearts}[/red] hearts, you're ready to learn!")


def cmd_tutor(progression: Progression):
    tutor = TutorChat(openai_chat(), progression.active_lesson)
    console.print(Panel(tutor.greeting, title="QuestBot Tutor", border_style="cyan"))
    console.print("[dim]Type q or menu to leave.[/dim]")
    while True:
        question = session_prompt("You")
        if not question.strip():
            continue
        try:
            with console.status("Thinking..."):
                reply = tutor.ask(question)
        except TutorError as e:
            console.print(f"[red]{e}[/red]")
            continue
        console.print(Panel(reply, title="QuestBot", border_style="cyan"))


async def login(store: ProgressStore) -> str:
    user_id = await store.get_setting("current_user")
    if user_id:
        return user_id
    email = Prompt.ask("Email")
    user = await store.find_user_by_email(email)
    if user is None:
        name = Prompt.ask("Name")
        user = await store.create_user(name, email)
        console.print(f"[green]Welcome to EduQuest, {user.name}![/green]")
    await store.set_setting("current_user", user.id)
    return user.id


async def run(db_path: str):
    store = ProgressStore(db_path)
    store.initialize()
    seed_courses(db_path)
    user_id = await login(store)
    progression = await Progression.load(store, user_id, get_courses(db_path))
    show_welcome(progression)

    while True:
        show_stats(progression)
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="learn").strip().lower()
        try:
            if choice == "learn":
                await cmd_learn(db_path, progression)
            elif choice == "courses":
                cmd_courses(db_path, progression)
            elif choice == "quests":
                cmd_quests(progression)
            elif choice == "achievements":
                cmd_achievements(progression)
            elif choice == "profile":
                await cmd_profile(progression)
            elif choice == "review":
                await cmd_review(db_path, progression)
            elif choice == "generate":
                cmd_generate(db_path, progression)
            elif choice == "refill":
                await cmd_refill(progression)
            elif choice == "tutor":
                cmd_tutor(progression)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you tomorrow, keep your streak alive![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to the menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except EduQuestError as e:
            console.print(f"[red]Error: {e}[/red]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


def main():
    setup_logging(os.environ.get("EDUQUEST_LOG_LEVEL", "WARNING"))
    asyncio.run(run(resolve_db_path()))


if __name__ == "__main__":
    main()
