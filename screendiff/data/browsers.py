"""Browser table — short names, aliases, and remote capability data."""

from __future__ import annotations

from typing import Any

LOCAL_BROWSER = "headless-chromium"
EXTENSION_BROWSER = "headless-chromium-ext"
EXTENSION_SUFFIX = "-ext"

# all major desktop browsers that we care about
DESKTOP = ["chrome", "firefox", "safari", "edge"]

# latest mobile browser versions
MOBILE = [
    "iphone11ProMax",
    "iphone11Pro",
    "iphone11",
    "iphoneSE",
    "GalaxyS20",
    "GalaxyA11",
    "Pixel4XL",
    "Pixel4",
]

LEGACY_MOBILE = [
    "iphoneXR",
    "iphone8Plus",
    "iphone8",
    "GalaxyS9Plus",
    "GalaxyS8",
    "Pixel3",
]

OTHER = [LOCAL_BROWSER]

ALIASES = {
    "desktop": DESKTOP,
    "mobile": MOBILE,
    "all": DESKTOP + MOBILE,
}

# engine: the Playwright browser type used to connect to the remote session
_BROWSER_INFO: dict[str, dict[str, Any]] = {
    # desktop
    "chrome": {"engine": "chromium", "browser": "chrome", "os": "windows", "os_version": "10"},
    "edge": {"engine": "chromium", "browser": "edge", "os": "windows", "os_version": "10"},
    "firefox": {"engine": "firefox", "browser": "playwright-firefox", "os": "windows", "os_version": "10"},
    "safari": {"engine": "webkit", "browser": "playwright-webkit", "os": "os x", "os_version": "catalina"},
    # mobile -- iOS
    "iphone11ProMax": {"engine": "webkit", "browser": "iPhone", "os_version": "13", "device": "iPhone 11 Pro Max"},
    "iphone11Pro": {"engine": "webkit", "browser": "iPhone", "os_version": "13", "device": "iPhone 11 Pro"},
    "iphone11": {"engine": "webkit", "browser": "iPhone", "os_version": "14", "device": "iPhone 11"},
    "iphoneSE": {"engine": "webkit", "browser": "iPhone", "os_version": "13", "device": "iPhone SE 2020"},
    "iphoneXR": {"engine": "webkit", "browser": "iPhone", "os_version": "12", "device": "iPhone XR"},
    "iphone8Plus": {"engine": "webkit", "browser": "iPhone", "os_version": "12", "device": "iPhone 8 Plus"},
    "iphone8": {"engine": "webkit", "browser": "iPhone", "os_version": "13", "device": "iPhone 8"},
    # mobile -- Android
    "GalaxyS20": {"engine": "chromium", "browser": "android", "os_version": "10.0", "device": "Samsung Galaxy S20"},
    "GalaxyA11": {"engine": "chromium", "browser": "android", "os_version": "10.0", "device": "Samsung Galaxy A11"},
    "GalaxyS9Plus": {"engine": "chromium", "browser": "android", "os_version": "9.0", "device": "Samsung Galaxy S9 Plus"},
    "GalaxyS8": {"engine": "chromium", "browser": "android", "os_version": "7.0", "device": "Samsung Galaxy S8"},
    "Pixel4XL": {"engine": "chromium", "browser": "android", "os_version": "11.0", "device": "Google Pixel 4 XL"},
    "Pixel4": {"engine": "chromium", "browser": "android", "os_version": "10.0", "device": "Google Pixel 4"},
    "Pixel3": {"engine": "chromium", "browser": "android", "os_version": "9.0", "device": "Google Pixel 3"},
}


def get_browser_info(browser: str) -> dict[str, Any]:
    """Return the remote capability data for a browser short name.

    Unknown names (including the local headless browsers) map to
    ``{"browser": <name>}``.
    """
    info = _BROWSER_INFO.get(browser)
    if info is None:
        return {"browser": browser}
    return dict(info)


def available_browsers() -> list[str]:
    return DESKTOP + MOBILE + LEGACY_MOBILE + OTHER


def is_mobile(browser: str) -> bool:
    return browser in MOBILE or browser in LEGACY_MOBILE


def expand_browsers(browsers: list[str]) -> list[str]:
    """Expand ``desktop``/``mobile``/``all`` aliases and drop duplicates.

    Order is preserved: explicit names first, then alias expansions in the
    order they were given.
    """
    explicit = [b for b in browsers if b not in ALIASES]
    expanded = list(explicit)
    for b in browsers:
        if b in ALIASES:
            expanded.extend(ALIASES[b])
    return list(dict.fromkeys(expanded))
