"""Line rules used by the built-in analysis agents."""

import re
from dataclasses import dataclass

from models import Severity


@dataclass(frozen=True)
class LineRule:
    """A regex checked against each added line."""

    title: str
    pattern: re.Pattern
    severity: Severity
    message: str


def _rule(title: str, pattern: str, severity: Severity, message: str) -> LineRule:
    return LineRule(title, re.compile(pattern), severity, message)


# =============================================================================
# CODE ANALYZER: bugs, maintainability, leftovers
# =============================================================================
CODE_RULES: tuple[LineRule, ...] = (
    _rule(
        "Bare except",
        r"^\s*except\s*:",
        "warning",
        "Bare `except:` also catches SystemExit and KeyboardInterrupt",
    ),
    _rule(
        "Debugger statement",
        r"\b(pdb\.set_trace\(\)|breakpoint\(\)|debugger;)",
        "warning",
        "Debugger statement left in code",
    ),
    _rule(
        "Mutable default argument",
        r"def \w+\(.*=\s*(\[\]|\{\})",
        "warning",
        "Mutable default argument is shared between calls",
    ),
    _rule(
        "Leftover marker",
        r"\b(TODO|FIXME|XXX)\b",
        "info",
        "Unresolved TODO/FIXME marker",
    ),
    _rule(
        "Console output",
        r"\bconsole\.log\(",
        "info",
        "console.log call left in code",
    ),
)


# =============================================================================
# SECURITY SCANNER: vulnerabilities only
# =============================================================================
SECURITY_RULES: tuple[LineRule, ...] = (
    _rule(
        "Hardcoded secret",
        r"(?i)\b\w*(password|passwd|secret|api_?key|token)\w*\s*[:=]\s*['\"][^'\"]{4,}['\"]",
        "critical",
        "Hardcoded secret in source; read it from the environment instead",
    ),
    _rule(
        "Private key",
        r"-----BEGIN (RSA |EC |OPENSSH |DSA )?PRIVATE KEY-----",
        "critical",
        "Private key committed to the repository",
    ),
    _rule(
        "SQL injection",
        r"(?i)['\"]\s*(SELECT|INSERT|UPDATE|DELETE)\b[^'\"]*['\"]\s*\+",
        "critical",
        "SQL built by string concatenation; use a parameterized query",
    ),
    _rule(
        "Code injection",
        r"(?<![\w.])eval\(",
        "critical",
        "eval() on dynamic input allows code execution",
    ),
    _rule(
        "Insecure deserialization",
        r"\bpickle\.loads?\(|\byaml\.load\((?![^)]*SafeLoader)",
        "critical",
        "Deserializing untrusted data can execute arbitrary code",
    ),
    _rule(
        "Shell injection",
        r"\bos\.system\(|shell\s*=\s*True",
        "warning",
        "Shell command execution; avoid passing user input to a shell",
    ),
    _rule(
        "TLS verification disabled",
        r"verify\s*=\s*False",
        "warning",
        "TLS certificate verification disabled",
    ),
    _rule(
        "Weak hash",
        r"\bhashlib\.(md5|sha1)\(",
        "warning",
        "MD5/SHA1 are not suitable for security purposes",
    ),
    _rule(
        "Plain HTTP",
        r"['\"]http://(?!localhost|127\.0\.0\.1)",
        "info",
        "Plain HTTP URL; prefer HTTPS",
    ),
)


# =============================================================================
# DEPLOYMENT VALIDATOR: things that must not ship
# =============================================================================
DEPLOYMENT_RULES: tuple[LineRule, ...] = (
    _rule(
        "Merge conflict marker",
        r"^(<{7}|>{7})( |$)",
        "critical",
        "Unresolved merge conflict marker",
    ),
    _rule(
        "Debug mode enabled",
        r"^\s*DEBUG\s*=\s*True\b",
        "warning",
        "DEBUG enabled in code that is about to be deployed",
    ),
    _rule(
        "Focused test",
        r"(?<![\w.])(fdescribe|fit)\(|\b(describe|it|test)\.only\(",
        "warning",
        "Focused test skips the rest of the suite",
    ),
)


def match_rules(rules: tuple[LineRule, ...], line: str) -> list[LineRule]:
    """Return the rules that *line* violates, in table order."""
    return [rule for rule in rules if rule.pattern.search(line)]
