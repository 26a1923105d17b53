"""
Validation - JSON schema validation of outgoing documents and CLI identifiers.

Every desired-state document is checked against its Draft 7 JSON schema
before it is sent to a provider. Identifiers supplied on the command line
are checked before any provider call is made.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

from baseline.base import InputError

logger = logging.getLogger(__name__)

# GitHub owner/repository names: alphanumerics, '-', '_' and '.'
_REPO_NAME = re.compile(r"^[A-Za-z0-9_.-]{1,100}$")
_OWNER_NAME = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")
# A DNS label
_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_REGION = re.compile(r"^[a-z]{2}(?:-gov)?-[a-z]+-\d+$")


def validate_schema(schema: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate that a schema is a valid JSON Schema (Draft 7).

    Args:
        schema: The schema to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        Draft7Validator.check_schema(schema)
        return True, None
    except Exception as e:
        return False, f"Invalid schema: {str(e)}"


def validate_document_against_schema(
    document: Dict[str, Any], schema: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a document against a JSON Schema.

    Args:
        document: The document to validate
        schema: The Draft 7 JSON Schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(
            schema, format_checker=Draft7Validator.FORMAT_CHECKER
        )
        errors = list(validator.iter_errors(document))

        if not errors:
            return True, None

        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"
    except Exception as e:
        logger.error(f"Unexpected error during validation: {e}")
        return False, f"Validation failed: {str(e)}"


# ==================== Identifiers ====================


def validate_repository_name(name: Optional[str]) -> str:
    """Return a stripped repository name or raise InputError."""
    value = (name or "").strip()
    if not value:
        raise InputError("Repository name is required")
    if not _REPO_NAME.match(value) or value in (".", ".."):
        raise InputError(f"Invalid repository name: {value!r}")
    return value


def validate_owner(owner: Optional[str]) -> str:
    value = (owner or "").strip()
    if not value:
        raise InputError("Repository owner is required (set GITHUB_ORG or --owner)")
    if not _OWNER_NAME.match(value):
        raise InputError(f"Invalid owner: {value!r}")
    return value


def validate_branch(branch: Optional[str]) -> str:
    """
    Validate a branch name against the subset of git ref rules that matter
    for the protection endpoint.
    """
    value = (branch or "").strip()
    if not value:
        raise InputError("Branch name must not be empty")
    if (
        value.startswith(("/", "-"))
        or value.endswith(("/", ".", ".lock"))
        or ".." in value
        or "//" in value
        or re.search(r"[\s~^:?*\[\\]", value)
    ):
        raise InputError(f"Invalid branch name: {value!r}")
    return value


def validate_subdomain(subdomain: Optional[str]) -> str:
    value = (subdomain or "").strip().lower()
    if not _LABEL.match(value):
        raise InputError(f"Invalid subdomain: {subdomain!r}")
    return value


def validate_domain(domain: Optional[str]) -> str:
    value = (domain or "").strip().lower().rstrip(".")
    labels = value.split(".")
    if len(labels) < 2 or not all(_LABEL.match(label) for label in labels):
        raise InputError(f"Invalid domain: {domain!r}")
    return value


def validate_region(region: Optional[str]) -> str:
    value = (region or "").strip().lower()
    if not _REGION.match(value):
        raise InputError(f"Invalid AWS region: {region!r}")
    return value


def validate_bucket_name(name: str) -> str:
    """S3 bucket names are 3-63 characters of dot-separated lowercase DNS labels."""
    if not 3 <= len(name) <= 63:
        raise InputError(f"Bucket name must be 3-63 characters: {name!r}")
    if not all(_LABEL.match(label) for label in name.split(".")):
        raise InputError(f"Invalid bucket name: {name!r}")
    return name
