"""Command line front end.

Every command logs in with ``--username``/``--password`` and then runs one
service operation against the stored document.
"""

import argparse
import asyncio
import json
import logging
import os
import random
import sys
from pathlib import Path

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import async_session_maker, init_db
from app.core.exceptions import HousePointsError, ValidationError
from app.core.grades import GRADE_LABELS
from app.core.logger import setup_logger
from app.schemas.auth import Actor, LoginRequest
from app.schemas.house import HouseCreate, HouseUpdate
from app.schemas.reward import RewardCreate
from app.schemas.student import StudentCreate, StudentUpdate
from app.schemas.teacher import TeacherCreate, TeacherUpdate
from app.schemas.transaction import TransactionCreate
from app.services import house as house_service
from app.services import ledger as ledger_service
from app.services import report as report_service
from app.services import reward as reward_service
from app.services import sorting as sorting_service
from app.services import store as store_service
from app.services import student as student_service
from app.services import teacher as teacher_service
from app.services.access import ASSIGNED_GROUP, group_accessible_students
from app.services.auth import authenticate, resolve_actor
from app.services.images import read_image_file

logger = logging.getLogger(__name__)


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _split_ids(value: str | None) -> list[int]:
    try:
        return [int(part) for part in _split_list(value)]
    except ValueError:
        raise ValidationError(f"Expected comma-separated IDs, got {value!r}")


# ============== Points ==============


async def cmd_leaderboard(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    board = await report_service.get_leaderboard(db, actor)
    if not board.houses:
        print("No houses found. Admins can create houses.")
        return

    for row in board.houses:
        print(f"{row.rank_label:>5}  {row.name:<20} {row.points:>6} pts")

    print("\nTop Students")
    for i, student in enumerate(board.top_students, start=1):
        house = f" ({student.house_name})" if student.house_name else ""
        print(f"  {i}. {student.name}{house} - {student.points} pts")
    if not board.top_students:
        print("  No students yet")

    print("\nTop Teachers")
    for i, teacher in enumerate(board.top_teachers, start=1):
        print(f"  {i}. {teacher.username} - {teacher.total_awarded} pts awarded")
    if not board.top_teachers:
        print("  No teacher activity yet")


async def cmd_transactions(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    rows = await ledger_service.list_transactions(db, actor)
    if not rows:
        print("No transactions yet.")
        return
    for row in rows:
        when = row.timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
        print(
            f"#{row.id:<5} {when}  {row.teacher_username:<12} {row.student_name:<20} "
            f"{row.house_name:<12} {row.amount_display:>5}  {row.note}"
        )


async def cmd_award(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    data = TransactionCreate(student_id=args.student_id, amount=args.amount, note=" ".join(args.note))
    if args.command == "deduct":
        txn = await ledger_service.deduct_points(db, actor, data)
    else:
        txn = await ledger_service.post_transaction(db, actor, data)
    action = "added" if txn.amount >= 0 else "taken"
    print(f"Successfully {action} {abs(txn.amount)} point(s) (transaction #{txn.id}).")


async def cmd_reverse(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    if await ledger_service.reverse_transaction(db, actor, args.transaction_id):
        print(f"Transaction #{args.transaction_id} deleted and its points reversed.")
    else:
        print(f"No transaction #{args.transaction_id}.")


async def cmd_roster(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    """Students the actor can award points to, grouped by grade."""
    document = await store_service.load_document(db)
    user = resolve_actor(document, actor)
    groups = group_accessible_students(user, document.students)
    if not any(groups.values()):
        print("No students available.")
        return
    for key, students in groups.items():
        label = GRADE_LABELS.get(key, "Assigned" if key == ASSIGNED_GROUP else f"Grade {key}")
        print(label)
        for student in students:
            house = document.get_house(student.house_id)
            suffix = f" ({house.name})" if house else ""
            print(f"  {student.id:>4}  {student.name}{suffix}")


# ============== Houses ==============


async def cmd_houses(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    action = args.action
    if action == "list":
        houses = await house_service.get_houses(db)
        for house in houses:
            print(f"{house.id:>4}  {house.name:<20} {house.color or '-':<10} {house.points:>6} pts")
        if not houses:
            print("No houses yet.")
    elif action == "add":
        logo = read_image_file(Path(args.logo)) if args.logo else None
        house = await house_service.create_house(
            db, actor, HouseCreate(name=args.name, color=args.color), logo=logo
        )
        print(f"House #{house.id} {house.name} created.")
    elif action == "edit":
        fields = {k: v for k, v in (("name", args.name), ("color", args.color)) if v is not None}
        house = await house_service.update_house(db, actor, args.house_id, HouseUpdate(**fields))
        print(f"House #{house.id} saved.")
    elif action == "logo":
        logo = None if args.clear else read_image_file(Path(args.path))
        await house_service.set_house_logo(db, actor, args.house_id, logo)
        print("Logo saved." if logo else "Logo cleared.")
    elif action == "delete":
        await house_service.delete_house(db, actor, args.house_id)
        print(f"House #{args.house_id} deleted.")
    elif action == "limit":
        capacity = await sorting_service.set_house_limit(
            db, actor, args.house_id, None if args.clear else args.limit
        )
        print(f"{capacity.name}: {capacity.count} / {capacity.limit if capacity.limit is not None else 'no limit'}")
    elif action == "capacity":
        for capacity in await sorting_service.get_house_capacities(db, actor):
            limit = capacity.limit if capacity.limit is not None else "no limit"
            print(f"{capacity.house_id:>4}  {capacity.name:<20} {capacity.count} / {limit}")


# ============== Students ==============


async def cmd_students(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    action = args.action
    if action == "list":
        students = await student_service.get_students(
            db, actor, search=args.search, grade=args.grade, house_id=args.house
        )
        for student in students:
            print(f"{student.id:>4}  {student.name:<24} {student.grade:<12} house={student.house_id or '-'} {student.points:>5} pts")
        if not students:
            print("No students found.")
    elif action == "add":
        student = await student_service.create_student(
            db, actor, StudentCreate(name=args.name, grade=args.grade or "", house_id=args.house)
        )
        print(f"Student #{student.id} {student.name} created.")
    elif action == "edit":
        fields: dict = {k: v for k, v in (("name", args.name), ("grade", args.grade)) if v is not None}
        if args.unassign:
            fields["house_id"] = None
        elif args.house is not None:
            fields["house_id"] = args.house
        student = await student_service.update_student(db, actor, args.student_id, StudentUpdate(**fields))
        print(f"Student #{student.id} saved.")
    elif action == "photo":
        photo = None if args.clear else read_image_file(Path(args.path))
        await student_service.set_student_photo(db, actor, args.student_id, photo)
        print("Photo saved." if photo else "Photo cleared.")
    elif action == "delete":
        await student_service.delete_student(db, actor, args.student_id)
        print(f"Student #{args.student_id} deleted.")


# ============== Teachers ==============


async def cmd_teachers(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    action = args.action
    if action == "list":
        rows = await teacher_service.get_teachers(db, actor)
        for row in rows:
            print(f"{row.username:<16} {row.name or '-':<20} {row.house_name or '-':<14} {row.grades:<20} {row.assigned_count} assigned")
        if not rows:
            print("No teachers yet.")
    elif action == "add":
        teacher = await teacher_service.create_teacher(
            db,
            actor,
            TeacherCreate(
                name=args.name,
                username=args.new_username,
                password=args.new_password,
                house_id=args.house,
                grade_access=_split_list(args.grades),
                accessible_student_ids=_split_ids(args.students),
            ),
        )
        print(f"Teacher {teacher.username} created.")
    elif action == "edit":
        fields: dict = {}
        if args.name is not None:
            fields["name"] = args.name
        if args.house is not None:
            fields["house_id"] = args.house
        if args.grades is not None:
            fields["grade_access"] = _split_list(args.grades)
        teacher = await teacher_service.update_teacher(db, actor, args.teacher, TeacherUpdate(**fields))
        print(f"Teacher {teacher.username} saved.")
    elif action == "password":
        await teacher_service.set_teacher_password(db, actor, args.teacher, args.new_password)
        print("Password changed.")
    elif action == "assign":
        teacher = await teacher_service.set_accessible_students(db, actor, args.teacher, _split_ids(args.students))
        print(f"{teacher.username} has {len(teacher.accessible_student_ids)} assigned student(s).")
    elif action == "grant":
        await teacher_service.grant_student(db, actor, args.teacher, args.student_id)
        print("Student assigned.")
    elif action == "revoke":
        await teacher_service.revoke_student(db, actor, args.teacher, args.student_id)
        print("Student unassigned.")
    elif action == "delete":
        await teacher_service.delete_teacher(db, actor, args.teacher)
        print(f"Teacher {args.teacher} deleted.")


# ============== Rewards ==============


async def cmd_rewards(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    action = args.action
    if action == "list":
        rewards = await reward_service.get_rewards(db, actor)
        for reward in rewards:
            print(f"{reward.id:>4}  {reward.name:<24} {reward.cost} pts")
        if not rewards:
            print("No rewards yet.")
    elif action == "add":
        reward = await reward_service.create_reward(db, actor, RewardCreate(name=args.name, cost=args.cost))
        print(f"Reward #{reward.id} {reward.name} created.")
    elif action == "delete":
        await reward_service.delete_reward(db, actor, args.reward_id)
        print(f"Reward #{args.reward_id} deleted.")


# ============== Sorting, maintenance ==============


async def cmd_sort(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    rng = random.Random(args.seed) if args.seed is not None else None
    result = await sorting_service.sort_student(db, actor, args.student_id, rng=rng)
    for i, spin in enumerate(result.spins, start=1):
        verdict = "" if spin.eligible else " (full, spinning again)"
        print(f"Spin {i}: {spin.category} -> {spin.house_name}{verdict}")
    if result.resolved:
        print(f"Student #{result.student_id} sorted into {result.house_name}!")
    else:
        print(f"Could not place student #{result.student_id}: every house drawn was full.")


async def cmd_check(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    problems = await ledger_service.check_balances(db)
    for problem in problems:
        print(problem)
    print("Balances are consistent." if not problems else f"{len(problems)} problem(s) found.")


async def cmd_export(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    data = await store_service.export_document(db, actor)
    text = json.dumps(data, indent=2)
    if args.path:
        Path(args.path).write_text(text, encoding="utf-8")
        print(f"Document written to {args.path}")
    else:
        print(text)


async def cmd_import(db: AsyncSession, actor: Actor, args: argparse.Namespace) -> None:
    try:
        raw = json.loads(Path(args.path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Cannot read {args.path}: {exc}")
    document = await store_service.import_document(db, actor, raw)
    print(
        f"Imported {len(document.houses)} houses, {len(document.students)} students "
        f"and {len(document.transactions)} transactions."
    )


COMMANDS = {
    "leaderboard": cmd_leaderboard,
    "transactions": cmd_transactions,
    "award": cmd_award,
    "deduct": cmd_award,
    "reverse": cmd_reverse,
    "roster": cmd_roster,
    "houses": cmd_houses,
    "students": cmd_students,
    "teachers": cmd_teachers,
    "rewards": cmd_rewards,
    "sort": cmd_sort,
    "check": cmd_check,
    "export": cmd_export,
    "import": cmd_import,
}


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for all commands."""
    parser = argparse.ArgumentParser(prog="house-points", description=settings.APP_NAME)
    parser.add_argument("-u", "--username", default=os.environ.get("HOUSE_POINTS_USERNAME"))
    parser.add_argument("-p", "--password", default=os.environ.get("HOUSE_POINTS_PASSWORD"))
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("leaderboard", help="Ranked houses, top students and teachers")
    commands.add_parser("transactions", help="Transaction history, newest first")
    commands.add_parser("roster", help="Students you can award points to")
    commands.add_parser("check", help="Verify point balances against the ledger")

    for name, help_text in (("award", "Add points"), ("deduct", "Take points away")):
        cmd = commands.add_parser(name, help=help_text)
        cmd.add_argument("student_id", type=int)
        cmd.add_argument("amount", type=int)
        cmd.add_argument("note", nargs="+", help="Reason (required)")

    cmd = commands.add_parser("reverse", help="Delete a transaction and reverse its points")
    cmd.add_argument("transaction_id", type=int)

    cmd = commands.add_parser("sort", help="Spin the sorting wheel for a student")
    cmd.add_argument("student_id", type=int)
    cmd.add_argument("--seed", type=int)

    cmd = commands.add_parser("export", help="Write the whole document as JSON")
    cmd.add_argument("path", nargs="?")
    cmd = commands.add_parser("import", help="Replace the document with a JSON export")
    cmd.add_argument("path")

    # Houses
    houses = commands.add_parser("houses", help="Manage houses").add_subparsers(dest="action", required=True)
    houses.add_parser("list")
    houses.add_parser("capacity")
    cmd = houses.add_parser("add")
    cmd.add_argument("name")
    cmd.add_argument("--color")
    cmd.add_argument("--logo", help="Image file")
    cmd = houses.add_parser("edit")
    cmd.add_argument("house_id", type=int)
    cmd.add_argument("--name")
    cmd.add_argument("--color")
    cmd = houses.add_parser("logo")
    cmd.add_argument("house_id", type=int)
    group = cmd.add_mutually_exclusive_group(required=True)
    group.add_argument("path", nargs="?")
    group.add_argument("--clear", action="store_true")
    cmd = houses.add_parser("delete")
    cmd.add_argument("house_id", type=int)
    cmd = houses.add_parser("limit")
    cmd.add_argument("house_id", type=int)
    group = cmd.add_mutually_exclusive_group(required=True)
    group.add_argument("limit", type=int, nargs="?")
    group.add_argument("--clear", action="store_true")

    # Students
    students = commands.add_parser("students", help="Manage students").add_subparsers(dest="action", required=True)
    cmd = students.add_parser("list")
    cmd.add_argument("--search")
    cmd.add_argument("--grade")
    cmd.add_argument("--house", type=int)
    cmd = students.add_parser("add")
    cmd.add_argument("name")
    cmd.add_argument("--grade")
    cmd.add_argument("--house", type=int)
    cmd = students.add_parser("edit")
    cmd.add_argument("student_id", type=int)
    cmd.add_argument("--name")
    cmd.add_argument("--grade")
    group = cmd.add_mutually_exclusive_group()
    group.add_argument("--house", type=int)
    group.add_argument("--unassign", action="store_true")
    cmd = students.add_parser("photo")
    cmd.add_argument("student_id", type=int)
    group = cmd.add_mutually_exclusive_group(required=True)
    group.add_argument("path", nargs="?")
    group.add_argument("--clear", action="store_true")
    cmd = students.add_parser("delete")
    cmd.add_argument("student_id", type=int)

    # Teachers
    teachers = commands.add_parser("teachers", help="Manage teacher accounts").add_subparsers(dest="action", required=True)
    teachers.add_parser("list")
    cmd = teachers.add_parser("add")
    cmd.add_argument("name")
    cmd.add_argument("new_username", metavar="username")
    cmd.add_argument("new_password", metavar="password")
    cmd.add_argument("--house", type=int)
    cmd.add_argument("--grades", help="Comma-separated, e.g. K,1,2")
    cmd.add_argument("--students", help="Comma-separated student IDs")
    cmd = teachers.add_parser("edit")
    cmd.add_argument("teacher")
    cmd.add_argument("--name")
    cmd.add_argument("--house", type=int)
    cmd.add_argument("--grades", help="Comma-separated, e.g. K,1,2 (empty to clear)")
    cmd = teachers.add_parser("password")
    cmd.add_argument("teacher")
    cmd.add_argument("new_password", metavar="password")
    cmd = teachers.add_parser("assign", help="Replace the explicitly assigned students")
    cmd.add_argument("teacher")
    cmd.add_argument("students", help="Comma-separated student IDs (empty to clear)")
    for name in ("grant", "revoke"):
        cmd = teachers.add_parser(name)
        cmd.add_argument("teacher")
        cmd.add_argument("student_id", type=int)
    cmd = teachers.add_parser("delete")
    cmd.add_argument("teacher")

    # Rewards
    rewards = commands.add_parser("rewards", help="Manage the reward catalog").add_subparsers(dest="action", required=True)
    rewards.add_parser("list")
    cmd = rewards.add_parser("add")
    cmd.add_argument("name")
    cmd.add_argument("cost", type=int)
    cmd = rewards.add_parser("delete")
    cmd.add_argument("reward_id", type=int)

    return parser


async def run(args: argparse.Namespace) -> int:
    """Log in and run one command. Returns the process exit code."""
    if not args.username or not args.password:
        print("Error: --username and --password are required")
        return 1

    await init_db()
    async with async_session_maker() as db:
        try:
            actor = await authenticate(
                db, LoginRequest(username=args.username, password=args.password)
            )
            if actor is None:
                print("Error: Invalid username or password")
                return 1

            logger.debug("Running %s as %s", args.command, actor.username)
            await COMMANDS[args.command](db, actor, args)
        except HousePointsError as exc:
            print(f"Error: {exc.message}")
            return 1
        except SchemaValidationError as exc:
            for error in exc.errors():
                print(f"Error: {error['msg']}")
            return 1
    return 0


def main() -> None:
    """CLI entry point."""
    setup_logger(
        "app",
        log_file=Path(settings.LOG_FILE) if settings.LOG_FILE else None,
        level=settings.LOG_LEVEL.upper(),
    )
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
