# app/utils/device_utils.py

from typing import Optional

from user_agents import parse


def describe_user_agent(user_agent: Optional[str]) -> Optional[str]:
    """
    Human-readable device label for a trusted-IP record, e.g. "Chrome on Windows".
    """
    if not user_agent:
        return None

    ua_parsed = parse(user_agent)
    browser = ua_parsed.browser.family or "Other"
    os_name = ua_parsed.os.family or "Other"

    if ua_parsed.is_bot:
        return f"{browser} (bot)"
    if browser == "Other" and os_name == "Other":
        return None
    if ua_parsed.is_mobile:
        return f"{browser} on {os_name} (mobile)"
    if ua_parsed.is_tablet:
        return f"{browser} on {os_name} (tablet)"
    return f"{browser} on {os_name}"
