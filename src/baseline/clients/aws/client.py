"""
AWS Resource Client - Implements ResourceClient over S3, Route53 and STS.

Properties (all scoped to one BucketRef):
    bucket               head_bucket / create_bucket
    public_access_block  get / put_public_access_block
    website              get / put_bucket_website
    policy               get / put_bucket_policy (JSON document)
    hosted_zone          list_hosted_zones_by_name (read-only)
    alias_record         list / change_resource_record_sets (UPSERT)
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
    ProfileNotFound,
)

from baseline.base import AuthError, BucketRef, PropertyState, ProviderError
from baseline.clients.base import ResourceClient
from baseline.documents import upsert_change_batch

logger = logging.getLogger(__name__)

_AUTH_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "ExpiredToken",
        "InvalidAccessKeyId",
        "InvalidClientTokenId",
        "SignatureDoesNotMatch",
        "UnrecognizedClientException",
    }
)

# Error codes meaning "this sub-resource is not configured yet"
_MISSING_CODES = frozenset(
    {
        "404",
        "NotFound",
        "NoSuchBucket",
        "NoSuchBucketPolicy",
        "NoSuchPublicAccessBlockConfiguration",
        "NoSuchWebsiteConfiguration",
    }
)

_WEBSITE_KEYS = (
    "IndexDocument",
    "ErrorDocument",
    "RedirectAllRequestsTo",
    "RoutingRules",
)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class _Missing(Exception):
    """Internal signal for a tolerated not-found response."""


class AWSClient(ResourceClient):
    """
    Resource client for an S3 website bucket and its Route53 alias.

    Uses one boto3 session for the run; the S3 client is bound to the
    bucket's region.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        session: Optional[Any] = None,
    ):
        self.region = region
        try:
            self.session = session or boto3.session.Session(
                profile_name=profile, region_name=region
            )
        except ProfileNotFound as e:
            raise AuthError(f"AWS profile not found: {e}")

        self._s3 = self.session.client("s3", region_name=region)
        self._route53 = self.session.client("route53")
        self._sts = self.session.client("sts")
        self._zone_ids: Dict[str, Optional[str]] = {}

        logger.debug(f"AWS client initialized: region={region}, profile={profile}")

    @property
    def name(self) -> str:
        return "aws"

    @classmethod
    def from_config(cls, config, region: str = "us-east-1") -> "AWSClient":
        return cls(region=region, profile=config.profile)

    # ResourceClient interface

    def verify_credentials(self) -> str:
        with self._translate("sts:GetCallerIdentity"):
            arn = self._sts.get_caller_identity()["Arn"]
        logger.info(f"Authenticated to AWS as {arn}")
        return arn

    def resource_exists(self, ref: BucketRef) -> bool:
        try:
            with self._translate("s3:HeadBucket", tolerate_missing=True):
                self._s3.head_bucket(Bucket=ref.bucket_name)
        except _Missing:
            return False
        return True

    def read_property(self, ref: BucketRef, name: str) -> PropertyState:
        bucket = ref.bucket_name
        try:
            if name == "bucket":
                exists = self.resource_exists(ref)
                return PropertyState(value=exists, exists=exists)
            if name == "public_access_block":
                with self._translate(
                    "s3:GetPublicAccessBlock", tolerate_missing=True
                ):
                    response = self._s3.get_public_access_block(Bucket=bucket)
                return PropertyState(value=response["PublicAccessBlockConfiguration"])
            if name == "website":
                with self._translate("s3:GetBucketWebsite", tolerate_missing=True):
                    response = self._s3.get_bucket_website(Bucket=bucket)
                return PropertyState(
                    value={k: response[k] for k in _WEBSITE_KEYS if k in response}
                )
            if name == "policy":
                with self._translate("s3:GetBucketPolicy", tolerate_missing=True):
                    response = self._s3.get_bucket_policy(Bucket=bucket)
                return PropertyState(value=json.loads(response["Policy"]))
        except _Missing:
            return PropertyState.absent()

        if name == "hosted_zone":
            zone_id = self._hosted_zone_id(ref.domain)
            if zone_id is None:
                return PropertyState.absent()
            return PropertyState(value=zone_id)

        if name == "alias_record":
            return self._read_alias_record(ref)

        raise ValueError(f"Unknown AWS property: {name}")

    def write_property(self, ref: BucketRef, name: str, value: Any) -> None:
        bucket = ref.bucket_name

        if name == "bucket":
            self._create_bucket(bucket)
        elif name == "public_access_block":
            with self._translate("s3:PutPublicAccessBlock"):
                self._s3.put_public_access_block(
                    Bucket=bucket, PublicAccessBlockConfiguration=value
                )
        elif name == "website":
            with self._translate("s3:PutBucketWebsite"):
                self._s3.put_bucket_website(Bucket=bucket, WebsiteConfiguration=value)
        elif name == "policy":
            with self._translate("s3:PutBucketPolicy"):
                self._s3.put_bucket_policy(Bucket=bucket, Policy=json.dumps(value))
        elif name == "alias_record":
            zone_id = self._hosted_zone_id(ref.domain)
            if zone_id is None:
                raise ProviderError(f"No hosted zone for {ref.domain}")
            with self._translate("route53:ChangeResourceRecordSets"):
                self._route53.change_resource_record_sets(
                    HostedZoneId=zone_id, ChangeBatch=upsert_change_batch(value)
                )
        else:
            raise ValueError(f"AWS property is read-only or unknown: {name}")
        logger.info(f"Updated {name} on {ref}")

    # Private helper methods

    @contextmanager
    def _translate(
        self, operation: str, tolerate_missing: bool = False
    ) -> Iterator[None]:
        """
        Translate botocore exceptions into the baseline error taxonomy.

        With tolerate_missing, not-found error codes raise _Missing instead.
        """
        try:
            yield
        except (NoCredentialsError, PartialCredentialsError) as e:
            raise AuthError(
                f"AWS credentials not configured ({e}). Run: aws configure"
            )
        except ClientError as e:
            code = _error_code(e)
            message = e.response.get("Error", {}).get("Message", str(e))
            if tolerate_missing and code in _MISSING_CODES:
                raise _Missing(code)
            if code in _AUTH_ERROR_CODES:
                raise AuthError(f"{operation} denied: {message}")
            if code == "403":
                raise ProviderError(
                    f"{operation} forbidden; the bucket may be owned by "
                    "another account",
                    403,
                )
            raise ProviderError(f"{operation} failed ({code}): {message}")
        except BotoCoreError as e:
            raise ProviderError(f"{operation} failed: {e}")

    def _create_bucket(self, bucket: str) -> None:
        kwargs: Dict[str, Any] = {"Bucket": bucket}
        if self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        with self._translate("s3:CreateBucket"):
            try:
                self._s3.create_bucket(**kwargs)
            except ClientError as e:
                if _error_code(e) != "BucketAlreadyOwnedByYou":
                    raise
                logger.info(f"Bucket {bucket} already owned by this account")

    def _hosted_zone_id(self, domain: str) -> Optional[str]:
        """Find the public hosted zone for exactly ``domain``; cached per run."""
        if domain in self._zone_ids:
            return self._zone_ids[domain]

        with self._translate("route53:ListHostedZonesByName"):
            response = self._route53.list_hosted_zones_by_name(DNSName=domain)

        zone_id = None
        for zone in response.get("HostedZones", []):
            if zone.get("Name", "").lower() != f"{domain.lower()}.":
                continue
            if zone.get("Config", {}).get("PrivateZone"):
                continue
            zone_id = zone["Id"].replace("/hostedzone/", "")
            break

        self._zone_ids[domain] = zone_id
        return zone_id

    def _read_alias_record(self, ref: BucketRef) -> PropertyState:
        zone_id = self._hosted_zone_id(ref.domain)
        if zone_id is None:
            return PropertyState.absent()

        name = ref.bucket_name
        with self._translate("route53:ListResourceRecordSets"):
            response = self._route53.list_resource_record_sets(
                HostedZoneId=zone_id,
                StartRecordName=name,
                StartRecordType="A",
                MaxItems="1",
            )

        for record in response.get("ResourceRecordSets", []):
            if record.get("Name", "").rstrip(".").lower() != name.lower():
                continue
            if record.get("Type") != "A":
                continue
            return PropertyState(value=self._normalize_record(name, record))
        return PropertyState.absent()

    @staticmethod
    def _normalize_record(name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        alias = record.get("AliasTarget")
        if alias is None:
            return {
                "Name": name,
                "Type": "A",
                "ResourceRecords": record.get("ResourceRecords", []),
            }
        return {
            "Name": name,
            "Type": "A",
            "AliasTarget": {
                "HostedZoneId": alias.get("HostedZoneId"),
                "DNSName": alias.get("DNSName", "").rstrip(".").lower(),
                "EvaluateTargetHealth": bool(alias.get("EvaluateTargetHealth")),
            },
        }
