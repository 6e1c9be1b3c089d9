"""Helpers shared by the console samples.

No transport code here: every function takes an `OrganizationService` and only
sequences a few calls and prints what happened. Errors from the service or the
file system propagate to the caller, except in `handle_exception`, which is the
terminal reporting sink.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Union

from src.samples.errors import (
    GenericRecord,
    OrganizationServiceFault,
    ServiceFaultRecord,
    TimeoutRecord,
    classify_error,
)
from src.samples.integrations.messages import (
    ImportSolutionRequest,
    QueryByAttribute,
    QueryExpression,
    RetrieveVersionRequest,
)
from src.samples.integrations.org_service import OrganizationService
from src.samples.use_cases.versioning import ServerVersion, coerce_version

logger = logging.getLogger(__name__)

SOLUTION_ENTITY = "solution"

Confirmation = Union[bool, Callable[[str], bool], None]


def check_version(service: OrganizationService, min_version: ServerVersion | str) -> bool:
    """Return True when the server version is at least `min_version`."""

    minimum = coerce_version(min_version)
    response = service.execute(RetrieveVersionRequest())
    current = ServerVersion.parse(response.version)
    logger.debug("Server version %s, minimum %s", current, minimum)

    if current >= minimum:
        return True

    print("This sample cannot be run against the current version.")
    print(f"Upgrade your instance to a version above {minimum} to run this sample.")
    return False


def import_solution(service: OrganizationService, unique_name: str, path_to_file: str | Path) -> bool:
    """Import the solution package unless a solution with `unique_name` exists.

    Returns True if the solution was imported, False if it was already installed.
    """

    query = QueryByAttribute(entity_name=SOLUTION_ENTITY)
    query.add_attribute_value("uniquename", unique_name)

    existing = service.retrieve_multiple(query)
    if len(existing) > 0:
        print(f"The {unique_name} solution is already installed.")
        return False

    print(f"The {unique_name} solution is not installed. Importing the solution....")
    file_bytes = Path(path_to_file).read_bytes()
    service.execute(ImportSolutionRequest(customization_file=file_bytes))
    logger.info("Imported solution %s from %s", unique_name, path_to_file)
    return True


def prompt_yes_no(question: str, input_fn: Callable[[str], str] | None = None) -> bool:
    """Ask on the console; any answer starting with 'y' or 'Y' is a yes."""

    read = input_fn or input
    try:
        answer = read(f"{question} (y/n) ")
    except EOFError:
        return False
    return (answer or "").startswith(("y", "Y"))


def _resolve_confirmation(confirm: Confirmation, question: str) -> bool:
    if confirm is None:
        return prompt_yes_no(question)
    if isinstance(confirm, bool):
        return confirm
    return bool(confirm(question))


def delete_solution(
    service: OrganizationService,
    unique_name: str,
    confirm: Confirmation = None,
) -> bool:
    """Delete the solution named `unique_name` once the user confirms.

    `confirm` is a pre-resolved answer, a callable receiving the question, or
    None to prompt on the console. Returns True when a solution was deleted.
    """

    question = f"Do you want to delete the {unique_name} solution?"
    if not _resolve_confirmation(confirm, question):
        return False

    print(f"Deleting the {unique_name} solution....")
    query = QueryExpression(
        entity_name=SOLUTION_ENTITY,
        column_set=["solutionid", "friendlyname"],
    )
    query.criteria.add_condition("uniquename", "eq", unique_name)

    results = service.retrieve_multiple(query)
    if len(results) == 0:
        print(f"No solution named {unique_name} is installed.")
        return False

    solution = results[0]
    service.delete(SOLUTION_ENTITY, solution["solutionid"])
    print(f"Deleted the {solution.get('friendlyname')} solution.")
    return True


def _fault_lines(detail: OrganizationServiceFault) -> list[str]:
    return [
        f"Timestamp: {detail.timestamp}",
        f"Code: {detail.error_code}",
        f"Message: {detail.message}",
        f"Plugin Trace: {detail.trace_text or ''}",
        f"Inner Fault: {'Has Inner Fault' if detail.has_inner_fault else 'No Inner Fault'}",
    ]


def format_exception(exc: BaseException) -> list[str]:
    """Render the console report for `exc`, one line per entry."""

    lines = ["The application terminated with an error."]
    record = classify_error(exc)

    if isinstance(record, ServiceFaultRecord):
        lines.extend(_fault_lines(record.detail))
    elif isinstance(record, TimeoutRecord):
        lines.append(f"Message: {record.message}")
        lines.append(f"Stack Trace: {record.stack_trace or ''}")
        lines.append(f"Inner Fault: {record.inner_message if record.inner_message is not None else 'No Inner Fault'}")
    elif isinstance(record, GenericRecord) and record.inner_message is not None:
        lines.append(record.inner_message)
        if record.inner_fault is not None:
            lines.extend(_fault_lines(record.inner_fault))

    return lines


def handle_exception(exc: BaseException) -> None:
    """Print a diagnostic report for an error that ended a sample."""

    logger.debug("Reporting %s", type(exc).__name__)
    for line in format_exception(exc):
        print(line)
