"""
Root conftest.py for pytest configuration

This file handles:
1. Automatic marker inheritance based on test location
2. Marker validation and enforcement
"""
import os

from tests.markers import (
    DOMAIN_MARKERS,
    OTHER_MARKERS,
    PRIMARY_MARKERS,
    MarkerValidator,
    apply_auto_markers,
    generate_marker_report,
)


def pytest_collection_modifyitems(config, items):
    """
    Modify collected test items to:
    1. Apply automatic markers based on test location
    2. Handle CI-specific test filtering
    """
    for item in items:
        apply_auto_markers(item)

    in_ci = (
        os.environ.get("CI", "false").lower() == "true" or os.environ.get("GITHUB_ACTIONS", "false").lower() == "true"
    )

    deselected = []
    for item in items:
        # In CI, "pytest -m slow" runs zero tests
        if in_ci and item.get_closest_marker("slow"):
            markexpr = config.option.markexpr
            if markexpr and "slow" in markexpr and "not slow" not in markexpr:
                deselected.append(item)

    if deselected:
        config.hook.pytest_deselected(items=deselected)
        for item in deselected:
            items.remove(item)


def pytest_configure(config):
    """
    Configure pytest with custom markers.

    This registers primary, domain and auxiliary markers dynamically.
    """
    for marker_name in sorted(PRIMARY_MARKERS):
        config.addinivalue_line("markers", f"{marker_name}: {marker_name} tests")

    for marker_name, description in DOMAIN_MARKERS.items():
        config.addinivalue_line("markers", f"{marker_name}: {description}")

    for marker_name in sorted(OTHER_MARKERS):
        config.addinivalue_line("markers", f"{marker_name}: auxiliary marker")


def pytest_collection_finish(session):
    """
    Called after collection has been performed.
    Store items for later use in session finish.
    """
    if hasattr(session, "items"):
        session.all_items = list(session.items)


def pytest_sessionfinish(session, exitstatus):
    """
    Called after whole test run finished, right before returning the exit status.
    """
    if hasattr(session, "all_items"):
        items = session.all_items
    elif hasattr(session, "items"):
        items = session.items
    else:
        items = []

    show_report = session.config.getoption("--show-marker-report", default=False)
    validate_markers = session.config.getoption("--validate-markers", default=False)

    if (show_report or validate_markers) and items:
        report = generate_marker_report(items)
        print("\n" + report)

        if validate_markers:
            validator = MarkerValidator()
            has_errors = any(validator.validate_item(item)[0] for item in items)

            # Fail the session if there are validation errors
            if has_errors and exitstatus == 0:
                session.exitstatus = 1


def pytest_addoption(parser):
    """
    Add custom command line options.
    """
    parser.addoption(
        "--validate-markers",
        action="store_true",
        default=False,
        help="Validate that all tests have appropriate markers",
    )
    parser.addoption(
        "--show-marker-report",
        action="store_true",
        default=False,
        help="Show marker usage report at the end of test run",
    )
