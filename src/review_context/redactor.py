"""Redaction of secrets from text and detection of secret-bearing files."""

import posixpath
import re

# Ordered: earlier patterns win when matches overlap.
SENSITIVE_PATTERNS: dict[str, re.Pattern[str]] = {
    # API keys and tokens (common formats)
    "api_key": re.compile(r"""(?:api[_-]?key|apikey)\s*[=:]\s*["']?([a-zA-Z0-9_\-]{20,})["']?""", re.I),
    "bearer_token": re.compile(r"Bearer\s+([a-zA-Z0-9_\-.]{20,})", re.I),
    "auth_token": re.compile(r"""(?:auth[_-]?token|token)\s*[=:]\s*["']?([a-zA-Z0-9_\-]{20,})["']?""", re.I),
    # AWS
    "aws_access_key": re.compile(r"(?:AKIA|ABIA|ACCA|ASIA)[A-Z0-9]{16}", re.I),
    "aws_secret_key": re.compile(
        r"""(?:aws[_-]?secret[_-]?(?:access[_-]?)?key)\s*[=:]\s*["']?([a-zA-Z0-9/+=]{40})["']?""", re.I
    ),
    # GitHub
    "github_token": re.compile(r"gh[pousr]_[A-Za-z0-9_]{36,}", re.I),
    "github_pat": re.compile(r"github_pat_[A-Za-z0-9_]{22,}", re.I),
    # Billing providers
    "polar_token": re.compile(r"polar_(?:live|test)_[a-zA-Z0-9]{24,}", re.I),
    "stripe_key": re.compile(r"(?:sk|rk)_(?:live|test)_[a-zA-Z0-9]{24,}", re.I),
    # Database connection strings with credentials
    "db_url": re.compile(r"(?:mysql|postgres(?:ql)?|mongodb(?:\+srv)?|redis|amqp)://[^@\s]+:[^@\s]+@\S+", re.I),
    # Private keys
    "private_key": re.compile(r"-----BEGIN (?:RSA |EC |DSA |OPENSSH |ENCRYPTED )?PRIVATE KEY-----", re.I),
    # Passwords in config
    "password_config": re.compile(r"""(?:password|passwd|pwd)\s*[=:]\s*["']?([^\s"']{8,})["']?""", re.I),
    # JSON Web Tokens
    "jwt": re.compile(r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*", re.I),
    # Generic secrets
    "secret": re.compile(r"""(?:secret|client[_-]?secret)\s*[=:]\s*["']?([a-zA-Z0-9_\-]{16,})["']?""", re.I),
    # Chat, email and SMS providers
    "slack_token": re.compile(r"xox[baprs]-[a-zA-Z0-9-]+", re.I),
    "sendgrid_key": re.compile(r"SG\.[a-zA-Z0-9_-]{22,}\.[a-zA-Z0-9_-]{43,}", re.I),
    "twilio_key": re.compile(r"SK[a-f0-9]{32}", re.I),
}

SENSITIVE_FILES = frozenset(
    {
        ".env",
        ".env.local",
        ".env.production",
        ".env.staging",
        ".env.development",
        "credentials.json",
        "service-account.json",
        "secrets.yaml",
        "secrets.yml",
        ".npmrc",
        ".pypirc",
        "id_rsa",
        "id_ed25519",
        ".htpasswd",
    }
)

ENV_FILE_PREFIX = ".env"
PREVIEW_LENGTH = 4


class SensitiveDataRedactor:
    """Scrubs credentials from text and flags secret-bearing files.

    Stateless; one instance can be shared by every filter and tool.
    """

    def redact(self, text: str) -> str:
        """Replace every recognised secret with a tagged marker.

        The marker keeps the pattern name and the first few characters of the
        match, e.g. ``[REDACTED:github_token:ghp_***]``.
        """
        for name, pattern in SENSITIVE_PATTERNS.items():
            text = pattern.sub(lambda match, name=name: self._redaction(name, match.group(0)), text)
        return text

    def is_sensitive_file(self, path: str) -> bool:
        """Whether the file name marks a file whose contents must not be shared."""
        filename = posixpath.basename(path.replace("\\", "/")).lower()
        return filename in SENSITIVE_FILES or filename.startswith(ENV_FILE_PREFIX)

    @staticmethod
    def _redaction(name: str, original: str) -> str:
        return f"[REDACTED:{name}:{original[:PREVIEW_LENGTH]}***]"
