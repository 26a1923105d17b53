"""
S3 website endpoint and Route53 alias zone lookups by region.

Pure functions; no network access.
"""

from typing import Dict, Optional

# Regions whose website endpoint uses a dash between "s3-website" and the
# region; newer regions use a dot.
_DASH_STYLE_REGIONS = frozenset(
    {
        "us-east-1",
        "us-west-1",
        "us-west-2",
        "eu-west-1",
        "ap-southeast-1",
        "ap-southeast-2",
        "ap-northeast-1",
    }
)

# Hosted zone IDs of the S3 website endpoints, used as alias targets
_WEBSITE_HOSTED_ZONE_IDS: Dict[str, str] = {
    "us-east-1": "Z3AQBSTGFYJSTF",
    "us-east-2": "Z2O1EMRO9K5GLX",
    "us-west-1": "Z2F56UZL2M1ACD",
    "us-west-2": "Z3BJ6K6RIION7M",
    "eu-west-1": "Z1BKCTXD74EZPE",
    "eu-central-1": "Z21DNDUVLTQW6Q",
    "ap-southeast-1": "Z3O0J2DXBE1FTB",
    "ap-southeast-2": "Z1WCIGYICN2BYD",
    "ap-northeast-1": "Z2M4EHUR26P7ZW",
}


def is_known_region(region: str) -> bool:
    return region in _WEBSITE_HOSTED_ZONE_IDS


def website_endpoint(bucket: str, region: str) -> str:
    """
    Return the S3 static website hostname for a bucket.

    Unknown regions get the dot-style hostname used by every region
    launched after 2014.
    """
    if region in _DASH_STYLE_REGIONS:
        return f"{bucket}.s3-website-{region}.amazonaws.com"
    return f"{bucket}.s3-website.{region}.amazonaws.com"


def website_hosted_zone_id(region: str) -> Optional[str]:
    """Return the alias hosted zone ID for a region, or None if unknown."""
    return _WEBSITE_HOSTED_ZONE_IDS.get(region)
