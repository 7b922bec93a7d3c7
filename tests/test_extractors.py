"""Tests for the query extractors."""

from __future__ import annotations

import pytest

from learnflow.extractors import (
    extract_course_code,
    extract_facts,
    extract_resource_type,
    extract_semester,
    extract_unit,
    is_navigation_query,
    needs_web_search,
)
from learnflow.knowledge import DEFAULT_COURSES
from learnflow.models import ResourceType


class TestCourseCode:
    @pytest.mark.parametrize(
        "query, expected",
        [
            ("Explain the concept of nanomaterials in CHB 101.", "CHB101"),
            ("What are the key topics covered in itc101?", "ITC101"),
            ("cse201 project ideas", "CSE201"),
        ],
    )
    def test_known_codes(self, query, expected):
        assert extract_course_code(query, DEFAULT_COURSES) == expected

    def test_unknown_code_is_no_course(self):
        assert extract_course_code("Is MTH 101 hard?", DEFAULT_COURSES) is None

    def test_skips_unknown_code_before_known_one(self):
        assert extract_course_code("MTH101 or CHB101?", DEFAULT_COURSES) == "CHB101"

    def test_requires_exactly_three_digits(self):
        assert extract_course_code("CHB 1010", DEFAULT_COURSES) is None

    def test_no_code(self):
        assert extract_course_code("how do I study", DEFAULT_COURSES) is None


class TestSemester:
    @pytest.mark.parametrize(
        "query, expected",
        [
            ("Where are the 3rd semester notes?", 3),
            ("3 sem materials", 3),
            ("1st sem timetable", 1),
            ("2nd Semester CSE IoT materials", 2),
            ("8th semester", 8),
        ],
    )
    def test_matches(self, query, expected):
        assert extract_semester(query) == expected

    def test_no_match(self):
        assert extract_semester("semester schedule") is None
        assert extract_semester("0th semester") is None


class TestUnitAndType:
    def test_unit(self):
        assert extract_unit("notes for Unit 4 please") == 4
        assert extract_unit("unit12") == 12
        assert extract_unit("community") is None

    def test_resource_type(self):
        assert extract_resource_type("Need the PDF") == ResourceType.PDF
        assert extract_resource_type("lab manual") == ResourceType.LAB
        assert extract_resource_type("download link") == ResourceType.DOWNLOAD
        assert extract_resource_type("laboratory") is None


class TestNavigation:
    @pytest.mark.parametrize(
        "query",
        ["Where can I find notes?", "show me the lectures", "how to access materials", "semester 2"],
    )
    def test_navigation_queries(self, query):
        assert is_navigation_query(query)

    def test_non_navigation(self):
        assert not is_navigation_query("Explain recursion")


class TestWebSearchNeed:
    def test_generic_question_needs_search(self):
        assert needs_web_search("Explain bubble sort in Python")

    def test_platform_question_does_not(self):
        assert not needs_web_search("When is the CHB101 assignment due?")

    def test_recency_overrides_platform(self):
        assert needs_web_search("latest course announcements")
        assert needs_web_search("course changes in 2025")


def test_extract_facts_combines_everything():
    facts = extract_facts("Where are the CHB 101 unit 2 notes for 1st semester?", DEFAULT_COURSES)
    assert facts.course_code == "CHB101"
    assert facts.unit == 2
    assert facts.semester == 1
    assert facts.resource_type == ResourceType.NOTES
    assert facts.is_navigation_query is True
    assert facts.needs_web_search is True
