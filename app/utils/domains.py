"""
Quiz domain catalogue - maps domain keys to display titles.
"""

from typing import Dict, List

DEFAULT_QUIZ_TITLE = "Skill Assessment Quiz"

DOMAIN_TITLES: Dict[str, str] = {
    "web-development": "Web Development Quiz",
    "data-science": "Data Science Quiz",
    "backend": "Backend Development Quiz",
    "ai-ml": "AI / ML Quiz",
    "networking": "Computer Networking Quiz",
    "algorithms": "Algorithms & Data Structures Quiz",
}


def get_domain_title(domain: str) -> str:
    """Display title for a domain; unknown domains get the generic title."""
    return DOMAIN_TITLES.get(domain, DEFAULT_QUIZ_TITLE)


def list_known_domains() -> List[dict]:
    return [{"domain": domain, "title": title} for domain, title in DOMAIN_TITLES.items()]
