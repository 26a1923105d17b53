"""
Desired-state documents.

Each document is a typed record that knows how to render itself as the
provider's request payload and carries the JSON schema that payload must
satisfy. encode() is the single path from a document to the wire.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from baseline.base import DocumentError, InputError
from validation import validate_document_against_schema


def encode(document: Any) -> Any:
    """
    Render a document as its request payload, validating it first.

    Plain values (e.g. a boolean flag) pass through unchanged.

    Raises:
        DocumentError: If the payload does not satisfy the document schema.
    """
    if not hasattr(document, "to_payload"):
        return document

    payload = document.to_payload()
    is_valid, error = validate_document_against_schema(payload, document.SCHEMA)
    if not is_valid:
        raise DocumentError(f"{type(document).__name__} is invalid: {error}")
    return payload


# ==================== GitHub ====================


@dataclass
class BranchProtection:
    """
    Branch protection ruleset for the branch protection PUT endpoint.

    The four nullable sub-rules are required by the API; ``None`` leaves the
    rule unconfigured.
    """

    required_status_checks: Optional[Dict[str, Any]] = None
    enforce_admins: bool = False
    required_pull_request_reviews: Optional[Dict[str, Any]] = None
    restrictions: Optional[Dict[str, Any]] = None
    allow_force_pushes: bool = False
    allow_deletions: bool = False
    required_linear_history: bool = False
    required_conversation_resolution: bool = False

    SCHEMA = {
        "type": "object",
        "required": [
            "required_status_checks",
            "enforce_admins",
            "required_pull_request_reviews",
            "restrictions",
        ],
        "properties": {
            "required_status_checks": {
                "type": ["object", "null"],
                "properties": {
                    "strict": {"type": "boolean"},
                    "contexts": {"type": "array", "items": {"type": "string"}},
                },
            },
            "enforce_admins": {"type": ["boolean", "null"]},
            "required_pull_request_reviews": {
                "type": ["object", "null"],
                "properties": {
                    "dismiss_stale_reviews": {"type": "boolean"},
                    "require_code_owner_reviews": {"type": "boolean"},
                    "require_last_push_approval": {"type": "boolean"},
                    "required_approving_review_count": {
                        "type": "integer",
                        "minimum": 0,
                        "maximum": 6,
                    },
                },
            },
            "restrictions": {
                "type": ["object", "null"],
                "required": ["users", "teams"],
                "properties": {
                    "users": {"type": "array", "items": {"type": "string"}},
                    "teams": {"type": "array", "items": {"type": "string"}},
                    "apps": {"type": "array", "items": {"type": "string"}},
                },
            },
            "allow_force_pushes": {"type": ["boolean", "null"]},
            "allow_deletions": {"type": "boolean"},
            "required_linear_history": {"type": "boolean"},
            "required_conversation_resolution": {"type": "boolean"},
        },
        "additionalProperties": False,
    }

    def to_payload(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BranchProtection":
        """Build a ruleset from a parsed protection file."""
        if not isinstance(data, Mapping):
            raise InputError("Branch protection document must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InputError(
                f"Unknown branch protection fields: {', '.join(unknown)}"
            )
        return cls(**dict(data))


# ==================== S3 ====================


@dataclass
class PublicAccessBlock:
    """Bucket-level public access block; all flags off for a public website."""

    block_public_acls: bool = False
    ignore_public_acls: bool = False
    block_public_policy: bool = False
    restrict_public_buckets: bool = False

    SCHEMA = {
        "type": "object",
        "required": [
            "BlockPublicAcls",
            "IgnorePublicAcls",
            "BlockPublicPolicy",
            "RestrictPublicBuckets",
        ],
        "properties": {
            "BlockPublicAcls": {"type": "boolean"},
            "IgnorePublicAcls": {"type": "boolean"},
            "BlockPublicPolicy": {"type": "boolean"},
            "RestrictPublicBuckets": {"type": "boolean"},
        },
        "additionalProperties": False,
    }

    def to_payload(self) -> Dict[str, Any]:
        return {
            "BlockPublicAcls": self.block_public_acls,
            "IgnorePublicAcls": self.ignore_public_acls,
            "BlockPublicPolicy": self.block_public_policy,
            "RestrictPublicBuckets": self.restrict_public_buckets,
        }


_REDIRECT_RULE_SCHEMA = {
    "type": "object",
    "required": ["Condition", "Redirect"],
    "properties": {
        "Condition": {
            "type": "object",
            "required": ["KeyPrefixEquals"],
            "properties": {"KeyPrefixEquals": {"type": "string", "minLength": 1}},
        },
        "Redirect": {
            "type": "object",
            "required": ["Protocol", "HostName", "ReplaceKeyWith", "HttpRedirectCode"],
            "properties": {
                "Protocol": {"enum": ["http", "https"]},
                "HostName": {"type": "string", "minLength": 1},
                "ReplaceKeyWith": {"type": "string"},
                "HttpRedirectCode": {"type": "string", "pattern": "^3[0-9]{2}$"},
            },
        },
    },
}


@dataclass
class RedirectRule:
    """Redirect every key starting with ``key_prefix`` to a fixed location."""

    key_prefix: str
    host_name: str
    replace_key_with: str
    protocol: str = "https"
    http_redirect_code: str = "302"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "Condition": {"KeyPrefixEquals": self.key_prefix},
            "Redirect": {
                "Protocol": self.protocol,
                "HostName": self.host_name,
                "ReplaceKeyWith": self.replace_key_with,
                "HttpRedirectCode": str(self.http_redirect_code),
            },
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RedirectRule":
        """
        Build a rule from a rules-file entry.

        Entries use the keys ``prefix``, ``host``, ``target`` and optionally
        ``protocol`` and ``code``.
        """
        try:
            return cls(
                key_prefix=str(data["prefix"]),
                host_name=str(data["host"]),
                replace_key_with=str(data["target"]),
                protocol=str(data.get("protocol", "https")),
                http_redirect_code=str(data.get("code", "302")),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InputError(f"Invalid redirect rule {data!r}: missing {e}")


@dataclass
class WebsiteConfiguration:
    """Static website configuration with redirect routing rules."""

    routing_rules: List[RedirectRule] = field(default_factory=list)
    index_suffix: str = "index.html"

    SCHEMA = {
        "type": "object",
        "required": ["IndexDocument"],
        "properties": {
            "IndexDocument": {
                "type": "object",
                "required": ["Suffix"],
                "properties": {"Suffix": {"type": "string", "minLength": 1}},
            },
            "RoutingRules": {"type": "array", "items": _REDIRECT_RULE_SCHEMA},
        },
    }

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"IndexDocument": {"Suffix": self.index_suffix}}
        if self.routing_rules:
            payload["RoutingRules"] = [rule.to_payload() for rule in self.routing_rules]
        return payload


def default_redirect_rules(owner: str, repo: str, ref: str) -> List[RedirectRule]:
    """
    Redirects for the setup-repo scripts.

    The more specific script prefixes come first; S3 applies the first
    matching rule.
    """
    raw_base = f"{owner}/{repo}/{ref}/setup-repo"
    return [
        RedirectRule(
            key_prefix="setup-repo.sh",
            host_name="raw.githubusercontent.com",
            replace_key_with=f"{raw_base}/setup-repo-standards.sh",
        ),
        RedirectRule(
            key_prefix="setup-repo.ps1",
            host_name="raw.githubusercontent.com",
            replace_key_with=f"{raw_base}/setup-repo-standards.ps1",
        ),
        RedirectRule(
            key_prefix="setup-repo",
            host_name="github.com",
            replace_key_with=f"{owner}/{repo}/tree/{ref}/setup-repo",
        ),
    ]


@dataclass
class BucketPolicy:
    """Public read access to every object in the bucket."""

    bucket: str

    SCHEMA = {
        "type": "object",
        "required": ["Version", "Statement"],
        "properties": {
            "Version": {"const": "2012-10-17"},
            "Statement": {
                "type": "array",
                "minItems": 1,
                "items": {
                    "type": "object",
                    "required": ["Effect", "Principal", "Action", "Resource"],
                    "properties": {
                        "Sid": {"type": "string"},
                        "Effect": {"enum": ["Allow", "Deny"]},
                        "Action": {"type": ["string", "array"]},
                        "Resource": {"type": ["string", "array"]},
                    },
                },
            },
        },
    }

    def to_payload(self) -> Dict[str, Any]:
        return {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "PublicReadGetObject",
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": "s3:GetObject",
                    "Resource": f"arn:aws:s3:::{self.bucket}/*",
                }
            ],
        }


# ==================== Route53 ====================


@dataclass
class AliasRecord:
    """An A record aliasing ``name`` to an S3 website endpoint."""

    name: str
    dns_name: str
    hosted_zone_id: str
    evaluate_target_health: bool = False

    SCHEMA = {
        "type": "object",
        "required": ["Name", "Type", "AliasTarget"],
        "properties": {
            "Name": {"type": "string", "minLength": 1},
            "Type": {"const": "A"},
            "AliasTarget": {
                "type": "object",
                "required": ["HostedZoneId", "DNSName", "EvaluateTargetHealth"],
                "properties": {
                    "HostedZoneId": {"type": "string", "pattern": "^Z[A-Z0-9]+$"},
                    "DNSName": {"type": "string", "minLength": 1},
                    "EvaluateTargetHealth": {"type": "boolean"},
                },
            },
        },
    }

    def to_payload(self) -> Dict[str, Any]:
        return {
            "Name": self.name,
            "Type": "A",
            "AliasTarget": {
                "HostedZoneId": self.hosted_zone_id,
                "DNSName": self.dns_name,
                "EvaluateTargetHealth": self.evaluate_target_health,
            },
        }


def upsert_change_batch(record: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap an encoded record set in a single-change UPSERT batch."""
    return {"Changes": [{"Action": "UPSERT", "ResourceRecordSet": record}]}
