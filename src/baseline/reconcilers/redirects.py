"""
Redirect bucket reconciler.

Governs an S3 static-website bucket named ``<subdomain>.<domain>`` that
redirects short script URLs to the setup scripts on GitHub, plus the Route53
alias record pointing the subdomain at the website endpoint.
"""

import logging
from typing import Any, Dict, List, Optional

from baseline.base import BucketRef, LookupAbsent, PropertyState, ReconciliationReport
from baseline.clients.base import ResourceClient
from baseline.documents import (
    AliasRecord,
    BucketPolicy,
    PublicAccessBlock,
    RedirectRule,
    WebsiteConfiguration,
    default_redirect_rules,
)
from baseline.reconcilers.base import PropertyCheck, ReconcilerPlugin
from baseline.regions import is_known_region, website_endpoint, website_hosted_zone_id

logger = logging.getLogger(__name__)

ROUTE53_CONSOLE_URL = "https://console.aws.amazon.com/route53"


def manual_alias_steps(ref: BucketRef) -> List[str]:
    """Console steps for creating the alias record by hand."""
    return [
        f"Go to: {ROUTE53_CONSOLE_URL}",
        f"Select hosted zone: {ref.domain}",
        "Create record:",
        f"  Name: {ref.subdomain}",
        "  Type: A",
        "  Alias: Yes",
        f"  Target: {website_endpoint(ref.bucket_name, ref.region)}",
    ]


class BucketCheck(PropertyCheck):
    """The bucket itself; every other property depends on it."""

    prerequisite = True

    def __init__(self):
        super().__init__("bucket", "bucket", "Website bucket exists")

    def desired(self, ref: BucketRef) -> bool:
        return True


class PublicAccessBlockCheck(PropertyCheck):
    def __init__(self):
        super().__init__(
            "public-access-block",
            "public_access_block",
            "Public access block allows a public website",
        )

    def desired(self, ref: BucketRef) -> PublicAccessBlock:
        return PublicAccessBlock()


class WebsiteCheck(PropertyCheck):
    """Static website hosting with the redirect routing rules."""

    def __init__(self, rules: List[RedirectRule]):
        super().__init__(
            "website", "website", "Static website hosting with redirect rules"
        )
        self.rules = rules

    def desired(self, ref: BucketRef) -> WebsiteConfiguration:
        return WebsiteConfiguration(routing_rules=self.rules)

    def matches(self, current: Any, desired: Any) -> bool:
        if not isinstance(current, dict):
            return False
        return all(current.get(key) == value for key, value in desired.items())


class BucketPolicyCheck(PropertyCheck):
    def __init__(self):
        super().__init__("bucket-policy", "policy", "Objects are publicly readable")

    def desired(self, ref: BucketRef) -> BucketPolicy:
        return BucketPolicy(ref.bucket_name)


class DnsAliasCheck(PropertyCheck):
    """
    Alias A record for the subdomain in the domain's public hosted zone.

    A missing hosted zone or an unknown region cannot be fixed here; both
    are reported with the manual steps instead.
    """

    def __init__(self):
        super().__init__("dns-alias", "alias_record", "Subdomain aliases the website")

    def read(self, client: ResourceClient, ref: BucketRef) -> PropertyState:
        if not is_known_region(ref.region):
            raise LookupAbsent(
                f"No website hosted zone known for region {ref.region}",
                manual_alias_steps(ref),
            )

        zone = client.read_property(ref, "hosted_zone")
        if not zone.exists:
            raise LookupAbsent(
                f"Hosted zone for {ref.domain} not found", manual_alias_steps(ref)
            )
        logger.debug(f"Found hosted zone {zone.value} for {ref.domain}")

        return client.read_property(ref, self.property_name)

    def desired(self, ref: BucketRef) -> AliasRecord:
        return AliasRecord(
            name=ref.bucket_name,
            dns_name=website_endpoint(ref.bucket_name, ref.region),
            hosted_zone_id=website_hosted_zone_id(ref.region),
        )

    def remediation(self, ref: BucketRef) -> List[str]:
        return manual_alias_steps(ref)


class RedirectsReconciler(ReconcilerPlugin):
    """Redirect bucket and DNS alias for the setup scripts."""

    def __init__(
        self,
        rules: Optional[List[RedirectRule]] = None,
        scripts_owner: str = "hiveforge-sh",
        scripts_repo: str = "scripts",
        scripts_ref: str = "master",
    ):
        if rules is None:
            rules = default_redirect_rules(scripts_owner, scripts_repo, scripts_ref)
        self.rules = list(rules)

    @property
    def name(self) -> str:
        return "redirects"

    @property
    def description(self) -> str:
        return "S3 redirect bucket and Route53 alias for setup script URLs"

    @property
    def governed_properties(self) -> List[str]:
        return [
            "bucket",
            "public-access-block",
            "website",
            "bucket-policy",
            "dns-alias",
        ]

    def checks(self, ref: BucketRef) -> List[PropertyCheck]:
        return [
            BucketCheck(),
            PublicAccessBlockCheck(),
            WebsiteCheck(self.rules),
            BucketPolicyCheck(),
            DnsAliasCheck(),
        ]

    def script_urls(self, ref: BucketRef) -> List[str]:
        return [
            f"http://{ref.bucket_name}/{rule.key_prefix}"
            for rule in self.rules
            if "." in rule.key_prefix
        ]

    def snapshot(self, client: ResourceClient, ref: BucketRef) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {
            "Bucket": ref.bucket_name,
            "Region": ref.region,
            "Website endpoint": website_endpoint(ref.bucket_name, ref.region),
        }

        zone = client.read_property(ref, "hosted_zone")
        snapshot["Hosted zone"] = zone.value if zone.exists else "not found"

        website = client.read_property(ref, "website")
        if website.exists:
            snapshot["Routing rules"] = len(website.value.get("RoutingRules", []))

        for index, url in enumerate(self.script_urls(ref), start=1):
            snapshot[f"Script URL {index}"] = url
        return snapshot

    def next_steps(self, ref: BucketRef, report: ReconciliationReport) -> List[str]:
        bucket = ref.bucket_name
        steps = ["Script URLs:"]
        steps.extend(f"  {url}" for url in self.script_urls(ref))
        steps.extend(
            [
                "Usage (bash):",
                f"  curl -sL http://{bucket}/setup-repo.sh | bash -s your-repo-name",
                "Usage (PowerShell):",
                f"  iwr http://{bucket}/setup-repo.ps1 -OutFile s.ps1; "
                ".\\s.ps1 -Repo your-repo; rm s.ps1",
                "DNS changes can take 5-10 minutes to propagate.",
                "For HTTPS, put CloudFront in front of the website endpoint with "
                f"an ACM certificate for *.{ref.domain} issued in us-east-1.",
            ]
        )
        return steps
