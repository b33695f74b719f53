"""Hardcoded passwords, API keys and tokens.

Keys are matched against a keyword list (``password``, ``apiKey``,
``db.secret`` ...) and values are dropped when they look like placeholders
or property references. Test sources are skipped.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import TYPE_CHECKING

from brxm_inspect.engine.models import FileType, InspectionCategory, Issue, QuickFix, Severity, TextRange
from brxm_inspect.inspections.support import doc, new_issue
from brxm_inspect.parsing.java import JavaSource
from brxm_inspect.parsing.yaml import YamlDocument

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext

SUSPICIOUS_KEYWORDS: tuple[str, ...] = (
    "password",
    "passwd",
    "pwd",
    "secret",
    "apikey",
    "api_key",
    "api-key",
    "token",
    "credential",
    "private_key",
    "privatekey",
    "access_key",
    "accesskey",
    "auth_token",
    "authtoken",
)

# Words that contain a keyword but are not credentials
EXCLUDED_KEYWORDS: tuple[str, ...] = (
    "author",
    "authorized",
    "authorization",
    "authenticate",
    "authentication",
    "tokenizer",
    "tokenize",
    "secretariat",
    "secretary",
)

_PLACEHOLDER_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\$\{.*\}",
        r"#\{.*\}",
        r"<.*>",
        r"changeme",
        r"replace.*",
        r"your.*here",
        r"example.*",
        r"todo.*",
        r"null|none|empty",
        r"[*xX]+",
    )
)
_PLACEHOLDER_WORDS = ("test", "example", "dummy", "fake", "sample", "placeholder", "changeme", "replace")
_PROPERTY_LINE = re.compile(r"^\s*([^=:\s]+)\s*[=:]\s*(.*?)\s*$")
_MIN_SECRET_LENGTH = 6

_DESCRIPTION = doc(
    """
    Credentials in source code or configuration end up in version control,
    build artifacts and logs, and cannot be rotated without a release.

    Read them from the environment or an external secret store instead:

        String password = System.getenv("DB_PASSWORD");

        db.password=${DB_PASSWORD}
    """
)


def _separated(keyword: str) -> re.Pattern[str]:
    kw = re.escape(keyword)
    return re.compile(rf"(?:.*[._-])?{kw}(?:[._-].*)?")


_SEPARATED = {kw: _separated(kw) for kw in SUSPICIOUS_KEYWORDS}


def is_suspicious_key(key: str) -> bool:
    lower = key.lower()
    if any(word in lower for word in EXCLUDED_KEYWORDS):
        return False
    for keyword in SUSPICIOUS_KEYWORDS:
        if _SEPARATED[keyword].fullmatch(lower):
            return True
        if len(keyword) > 3:
            # dbPassword / passwordHash style names
            if lower.endswith(keyword) and len(lower) > len(keyword) and lower[-len(keyword) - 1].isalpha():
                return True
            if lower.startswith(keyword) and key[len(keyword) : len(keyword) + 1].isupper():
                return True
    return False


def is_placeholder(value: str) -> bool:
    value = value.strip()
    if len(value) < _MIN_SECRET_LENGTH:
        return True
    if any(p.fullmatch(value) for p in _PLACEHOLDER_PATTERNS):
        return True
    if value.startswith(("$", "#{", "%{")):
        return True
    if "ENV" in value or re.fullmatch(r"[A-Z_]+", value):
        return True
    lower = value.lower()
    return any(word in lower for word in _PLACEHOLDER_WORDS)


def credential_type(key: str) -> str:
    lower = key.lower()
    if any(k in lower for k in ("password", "passwd", "pwd")):
        return "Password"
    if "api" in lower and "key" in lower:
        return "API Key"
    if "token" in lower:
        return "Access Token"
    if "private" in lower and "key" in lower:
        return "Private Key"
    if "secret" in lower:
        return "Secret Key"
    return "Credential"


def mask(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return value[:2] + "*" * (len(value) - 4) + value[-2:]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


class HardcodedCredentialsInspection:
    id = "security.hardcoded-credentials"
    name = "Hardcoded Credentials"
    description = _DESCRIPTION
    category = InspectionCategory.SECURITY
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.JAVA, FileType.PROPERTIES, FileType.YAML})

    def inspect(self, context: InspectionContext) -> list[Issue]:
        if context.is_test_source():
            return []
        if context.file_type is FileType.JAVA:
            candidates = self._java_candidates(context)
        elif context.file_type is FileType.YAML:
            candidates = self._yaml_candidates(context)
        else:
            candidates = self._properties_candidates(context)

        issues = []
        for key, value, text_range in candidates:
            if not is_suspicious_key(key) or is_placeholder(value):
                continue
            kind = credential_type(key)
            issues.append(
                new_issue(
                    self,
                    context,
                    message=f"Hardcoded {kind} detected: '{key}'",
                    description=self.description,
                    range=text_range,
                    metadata={"variableName": key, "credentialType": kind, "maskedValue": mask(value)},
                )
            )
        return issues

    def _java_candidates(self, context: InspectionContext) -> Iterator[tuple[str, str, TextRange]]:
        source = context.ast
        if not isinstance(source, JavaSource):
            return
        for declarator in source.find_all("variable_declarator"):
            name = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name is None or value is None or value.type != "string_literal":
                continue
            literal = source.text(value)
            if literal.startswith('"""'):
                continue
            yield source.text(name), _unquote(literal), source.range_of(name)

    def _yaml_candidates(self, context: InspectionContext) -> Iterator[tuple[str, str, TextRange]]:
        document = context.ast
        if not isinstance(document, YamlDocument):
            return
        for entry in document.entries():
            if entry.value:
                yield entry.key, entry.value, TextRange.whole_line(entry.line)

    def _properties_candidates(self, context: InspectionContext) -> Iterator[tuple[str, str, TextRange]]:
        for number, line in enumerate(context.lines, start=1):
            if line.lstrip().startswith(("#", "!")):
                continue
            match = _PROPERTY_LINE.match(line)
            if match and match.group(2):
                yield match.group(1), _unquote(match.group(2)), TextRange.whole_line(number)

    def quick_fixes(self, issue: Issue) -> list[QuickFix]:
        return []
