from user_agents import parse

def parse_user_agent(ua: str | None) -> tuple[str | None, str | None, str | None]:
    """Return (device, browser, os) for the exam session record."""
    if not ua:
        return (None, None, None)
    u = parse(ua)
    if u.is_bot:
        return ("Bot", u.browser.family, u.os.family)
    device = "Mobile" if u.is_mobile else "Tablet" if u.is_tablet else "PC"
    return (device, u.browser.family, u.os.family)
