"""
Site policy classification for submitted URLs.

Restricted hosts sit behind a login wall and block automation, so their
content has to be pasted by the user. Script-heavy hosts are applicant
tracking systems that render postings client-side and need a browser.
Both lists are heuristics; the orchestrator still falls through its
strategies when a host is misclassified.
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

RESTRICTED_HOSTS = (
    'linkedin.com',
    'facebook.com',
    'fb.com',
    'twitter.com',
    'x.com',
    'instagram.com',
)

SCRIPT_HEAVY_HOSTS = (
    'greenhouse.io',
    'lever.co',
    'workday.com',
    'myworkdayjobs.com',
    'applytojob.com',
    'recruiterflow.com',
    'ashbyhq.com',
    'breezy.hr',
    'smartrecruiters.com',
    'icims.com',
    'ultipro.com',
    'taleo.net',
    'successfactors.com',
)

RESTRICTED_SITE_MESSAGES = (
    (('linkedin.com',), 'LinkedIn requires login and blocks scrapers. Please copy and paste the job description.'),
    (('facebook.com', 'fb.com'), 'Facebook requires login. Please copy and paste the job posting content.'),
    (('twitter.com', 'x.com'), 'Twitter/X has limited public access. Please copy and paste the post content.'),
)

GENERIC_RESTRICTED_MESSAGE = 'This site requires login and blocks automated access. Please copy and paste the posting content.'


@dataclass(frozen=True)
class SitePolicy:
    restricted: bool = False
    script_heavy: bool = False


def _hostname(url: str) -> Optional[str]:
    try:
        host = urlparse(url.strip()).hostname
    except (ValueError, AttributeError):
        return None
    return host.lower() if host else None


def _host_matches(host: str, domain: str) -> bool:
    """Exact host or any subdomain of it (jobs.lever.co matches lever.co)."""
    return host == domain or host.endswith('.' + domain)


def classify(url: str) -> SitePolicy:
    """
    Classify a URL against the restricted and script-heavy host lists.

    Pure and total: malformed input classifies as neither and is left for
    URL validation to reject.
    """
    host = _hostname(url) if isinstance(url, str) else None
    if not host:
        return SitePolicy()

    return SitePolicy(
        restricted=any(_host_matches(host, d) for d in RESTRICTED_HOSTS),
        script_heavy=any(_host_matches(host, d) for d in SCRIPT_HEAVY_HOSTS),
    )


def is_restricted_site(url: str) -> bool:
    return classify(url).restricted


def restricted_site_message(url: str) -> Optional[str]:
    """User-facing guidance for a restricted host, or None if not restricted."""
    host = _hostname(url) if isinstance(url, str) else None
    if not host or not is_restricted_site(url):
        return None

    for domains, message in RESTRICTED_SITE_MESSAGES:
        if any(_host_matches(host, d) for d in domains):
            return message
    return GENERIC_RESTRICTED_MESSAGE
