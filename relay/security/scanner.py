#!/usr/bin/env python3
"""Scan static files and a deployed site for leaked secrets.

Checks performed:
- Credential-shaped substrings (Retell keys, bearer tokens, api keys)
- Plain-HTTP references to non-local hosts
- Placeholder proxy URLs left in deployed pages
- Optional live check that the relay hands out call access tokens

Usage:
    python -m relay.security.scanner
    python -m relay.security.scanner https://example.github.io/demo/
    python -m relay.security.scanner --files index.html app.js --strict
"""

from __future__ import annotations

import argparse
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import httpx

DEFAULT_FILES = ["wellabe-demo.html", "test-integration.html"]
DEFAULT_PROXY_URL = "https://wellabe-demo.vercel.app/api/retell-proxy"
DEFAULT_TEST_AGENT_ID = "agent_57d5ff27b5134a353952f6da7d"
PLACEHOLDER_PROXY = "your-proxy-domain"
CONFIGURED_PROXY_HOST = "wellabe-demo.vercel.app"

SECRET_PATTERNS = [
    re.compile(r"key_[a-f0-9]{32}", re.IGNORECASE),
    re.compile(r"Bearer\s+[a-zA-Z0-9_-]+", re.IGNORECASE),
    re.compile(r"api[_-]?key['\":\s]*[a-zA-Z0-9_-]{20,}", re.IGNORECASE),
    re.compile(r"secret['\":\s]*[a-zA-Z0-9_-]{20,}", re.IGNORECASE),
    re.compile(r"token['\":\s]*[a-zA-Z0-9_-]{20,}", re.IGNORECASE),
]

# Call access tokens are meant to reach the browser.
EXPECTED_TOKEN_NAMES = ("access_token", "accessToken")

SECURITY_HEADER_MARKERS = (
    "X-Content-Type-Options",
    "X-Frame-Options",
    "Content-Security-Policy",
)

HTTP_URL_PATTERN = re.compile(r"http://[^\s\"'<>]+", re.IGNORECASE)
LOCAL_HOSTS = ("localhost", "127.0.0.1")


def _is_expected_token(content: str, match: re.Match) -> bool:
    # "token" inside "access_token" matches without its prefix; look behind it.
    window = content[max(0, match.start() - len("access_")):match.end()]
    return any(name in window for name in EXPECTED_TOKEN_NAMES)


class SecurityValidator:
    """Collects secret-exposure errors and hardening warnings."""

    def __init__(self, http_client: httpx.Client | None = None):
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.info: list[str] = []
        self._http = http_client or httpx.Client(timeout=10.0, follow_redirects=True)

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Content checks
    # ------------------------------------------------------------------

    def check_for_secrets(self, content: str, source: str) -> list[str]:
        """Record every credential-shaped match; returns the matches found."""
        found: list[str] = []
        for pattern in SECRET_PATTERNS:
            matches = [
                match.group(0)
                for match in pattern.finditer(content)
                if not _is_expected_token(content, match)
            ]
            if matches:
                self.errors.append(f"🚨 SECRET EXPOSED in {source}: {', '.join(matches)}")
                found.extend(matches)
        return found

    def check_for_security_headers(self, content: str, source: str) -> bool:
        if any(marker in content for marker in SECURITY_HEADER_MARKERS):
            self.info.append(f"✅ Security headers found in {source}")
            return True
        return False

    def check_for_https(self, content: str, source: str) -> list[str]:
        insecure = [
            url
            for url in HTTP_URL_PATTERN.findall(content)
            if not any(host in url for host in LOCAL_HOSTS)
        ]
        if insecure:
            self.warnings.append(f"⚠️  HTTP URLs found in {source}: {', '.join(insecure)}")
        return insecure

    def check_for_proxy_endpoint(self, content: str, source: str) -> None:
        if PLACEHOLDER_PROXY in content:
            self.errors.append(f"🚨 Placeholder proxy URL found in {source}")

        if CONFIGURED_PROXY_HOST in content:
            self.info.append(f"✅ Proxy endpoint configured in {source}")

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def validate_content(self, content: str, source: str, deployed: bool = False) -> None:
        self.check_for_secrets(content, source)
        self.check_for_security_headers(content, source)
        self.check_for_https(content, source)
        if deployed:
            self.check_for_proxy_endpoint(content, source)

    def validate_local_files(self, paths: Iterable[str | Path]) -> None:
        """Scan local files; missing files are skipped."""
        for path in map(Path, paths):
            if not path.exists():
                continue
            self.validate_content(path.read_text(encoding="utf-8", errors="replace"), str(path))

    def validate_deployed_site(self, url: str) -> None:
        try:
            response = self._http.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self.errors.append(f"Failed to fetch {url}: {exc}")
            return
        self.validate_content(response.text, url, deployed=True)

    def test_voice_agent_endpoint(
        self,
        proxy_url: str,
        agent_id: str = DEFAULT_TEST_AGENT_ID,
    ) -> bool:
        """POST a voice-call request to the relay; expects an access_token back."""
        payload = {
            "agent_id": agent_id,
            "metadata": {
                "test": "security-validation",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
        try:
            response = self._http.post(proxy_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self.warnings.append(f"⚠️  Voice agent endpoint test failed: {exc}")
            return False

        if "access_token" in response.text:
            self.info.append("✅ Voice agent endpoint working correctly")
            return True

        self.warnings.append("⚠️  Voice agent endpoint may not be working correctly")
        return False

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def passed(self, strict: bool = False) -> bool:
        if self.errors:
            return False
        return not (strict and self.warnings)

    def generate_report(self, strict: bool = False) -> bool:
        print("\n📊 Security Validation Report")
        print("================================")

        for line in self.info:
            print(f"   {line}")

        if not self.errors:
            print("✅ No security issues found!")
        else:
            print("❌ Security Issues Found:")
            for error in self.errors:
                print(f"   {error}")

        if self.warnings:
            print("\n⚠️  Warnings:")
            for warning in self.warnings:
                print(f"   {warning}")

        return self.passed(strict)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scan files and a deployed site for leaked secrets",
    )
    parser.add_argument("site_url", nargs="?", help="Deployed site to fetch and scan")
    parser.add_argument(
        "--files",
        nargs="*",
        default=DEFAULT_FILES,
        help="Local files to scan (missing files are skipped)",
    )
    parser.add_argument(
        "--proxy-url",
        default=DEFAULT_PROXY_URL,
        help="Relay endpoint to smoke-test when a site URL is given",
    )
    parser.add_argument("--strict", action="store_true", help="Fail on warnings")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    validator = SecurityValidator()

    try:
        print("🔍 Validating local files...")
        validator.validate_local_files(args.files)

        if args.site_url:
            print(f"🌐 Validating deployed site: {args.site_url}")
            validator.validate_deployed_site(args.site_url)
            print(f"🎤 Testing voice agent endpoint: {args.proxy_url}")
            validator.test_voice_agent_endpoint(args.proxy_url)
    finally:
        validator.close()

    is_secure = validator.generate_report(args.strict)

    if not is_secure:
        print("\n❌ Security validation failed! Please fix the issues above.")
        return 1

    print("\n🎉 Security validation passed! Safe to deploy.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
