"""Built-in course catalogue and website map.

The tables here are the defaults; ``load_knowledge`` can replace the
navigation table with one read from a JSON file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from .models import (
    CourseInfo,
    CourseResource,
    KnowledgeBase,
    NavigationDepartment,
    NavigationPage,
    NavigationSemester,
    NavigationTable,
    SemesterInfo,
)

logger = logging.getLogger(__name__)


def _course_resources(slug: str, *names_and_dirs: tuple[str, str]) -> tuple[CourseResource, ...]:
    return tuple(
        CourseResource(name=name, path=f"/resources/{slug}/{sub}")
        for name, sub in names_and_dirs
    )


DEFAULT_COURSES: dict[str, CourseInfo] = {
    "CHB101": CourseInfo(
        code="CHB101",
        name="Chemistry Basics 101",
        description=(
            "Introduction to basic chemistry concepts including atoms, "
            "molecules, and chemical reactions."
        ),
        topics=(
            "Atomic Structure",
            "Periodic Table",
            "Chemical Bonding",
            "Stoichiometry",
            "Nanomaterials",
            "Chemical Reactions",
        ),
        resources=_course_resources(
            "chb101",
            ("Lecture Notes", "lectures"),
            ("Lab Manuals", "labs"),
            ("Practice Problems", "practice"),
        ),
    ),
    "ITC101": CourseInfo(
        code="ITC101",
        name="Introduction to Computing 101",
        description="Fundamentals of computer science and programming.",
        topics=(
            "Computer Architecture",
            "Binary and Hexadecimal",
            "Algorithms",
            "Programming Basics",
            "Data Structures",
            "Problem Solving",
        ),
        resources=_course_resources(
            "itc101",
            ("Lecture Notes", "lectures"),
            ("Programming Exercises", "exercises"),
            ("Reference Materials", "references"),
        ),
    ),
    "CSE201": CourseInfo(
        code="CSE201",
        name="Computer Science Engineering 201",
        description="Advanced topics in computer science and engineering.",
        topics=(
            "Object-Oriented Programming",
            "Database Systems",
            "Web Development",
            "Software Engineering",
            "Network Fundamentals",
            "IoT Basics",
        ),
        resources=_course_resources(
            "cse201",
            ("Lecture Notes", "lectures"),
            ("Project Materials", "projects"),
            ("Reference Materials", "references"),
        ),
    ),
}

DEFAULT_SEMESTERS: dict[int, SemesterInfo] = {
    1: SemesterInfo(
        number=1,
        path="/resources/semester1",
        courses=("CHB101", "ITC101", "MTH101", "PHY101", "ENG101"),
    ),
    2: SemesterInfo(
        number=2,
        path="/resources/semester2",
        courses=("CHB102", "ITC102", "MTH102", "PHY102", "ENG102"),
    ),
    3: SemesterInfo(
        number=3,
        path="/resources/semester3",
        courses=("CSE201", "CSE202", "MTH201", "ECE201", "HUM201"),
    ),
    4: SemesterInfo(
        number=4,
        path="/resources/semester4",
        courses=("CSE203", "CSE204", "MTH202", "ECE202", "HUM202"),
    ),
}

DEFAULT_NAVIGATION = NavigationTable(
    pages=(
        NavigationPage(name="Home", path="/", description="The landing page with featured courses and announcements."),
        NavigationPage(name="Resources", path="/resources", description="Browse study material by semester, course, or type."),
        NavigationPage(name="CGPA Calculator", path="/tools/cgpa-calculator", description="Compute your semester and cumulative GPA."),
        NavigationPage(name="Study Timer", path="/tools/study-timer", description="A focus timer for structured study sessions."),
        NavigationPage(name="Exam Scheduler", path="/tools/exam-scheduler", description="Plan revision around your exam dates."),
        NavigationPage(name="Note Organizer", path="/tools/note-organizer", description="Keep your lecture notes tagged and searchable."),
    ),
    departments=(
        NavigationDepartment(code="CHB", name="Chemistry", path="/departments/chemistry", courses=("CHB101", "CHB102")),
        NavigationDepartment(code="ITC", name="Information Technology", path="/departments/it", courses=("ITC101", "ITC102")),
        NavigationDepartment(code="CSE", name="Computer Science", path="/departments/cse", courses=("CSE201", "CSE202", "CSE203", "CSE204")),
        NavigationDepartment(code="MTH", name="Mathematics", path="/departments/mathematics", courses=("MTH101", "MTH102", "MTH201", "MTH202")),
    ),
    semesters=tuple(
        NavigationSemester(
            number=sem.number,
            name=f"Semester {sem.number}",
            path=sem.path,
            courses=sem.courses,
        )
        for sem in DEFAULT_SEMESTERS.values()
    ),
    resources=(
        NavigationPage(name="Lecture Notes", path="/resources/notes", description="Typed and scanned notes for every unit."),
        NavigationPage(name="Lab Manuals", path="/resources/lab-manuals", description="Experiment procedures and observation tables."),
        NavigationPage(name="Assignments", path="/resources/assignments", description="Problem sets with due dates, grouped by course."),
        NavigationPage(name="Previous Year Papers", path="/resources/papers", description="Past exam papers for revision."),
    ),
)


def load_navigation(path: Path) -> NavigationTable:
    """Read a navigation table from JSON.

    The file holds ``pages``, ``departments``, ``semesters`` and ``resources``
    arrays. Any read or validation problem falls back to the built-in table.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        table = NavigationTable.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        logger.error("Could not load navigation data from %s: %s", path, exc)
        return DEFAULT_NAVIGATION
    logger.info("Loaded website navigation data from %s", path)
    return table


def load_knowledge(navigation_file: Path | None = None) -> KnowledgeBase:
    navigation = load_navigation(navigation_file) if navigation_file else DEFAULT_NAVIGATION
    return KnowledgeBase(
        courses=dict(DEFAULT_COURSES),
        semesters=dict(DEFAULT_SEMESTERS),
        navigation=navigation,
    )
