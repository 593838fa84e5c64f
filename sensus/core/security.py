"""Password hashing, password strength rules and JWT bearer tokens."""
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from sensus.core.config import Settings

# bcrypt ignores everything past 72 bytes
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8

SPECIAL_RE = re.compile(r'[!@#$%^&*(),.?":{}|<>]')
COMMON_PATTERNS = [
    re.compile(r"(.)\1{2,}"),
    re.compile(r"123|abc|qwe", re.IGNORECASE),
    re.compile(r"password|admin|user", re.IGNORECASE),
]


class InvalidToken(Exception):
    pass


class ExpiredToken(InvalidToken):
    pass


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    role: str
    permissions: list[str]
    jti: str
    expires_at: datetime


@dataclass
class PasswordCheck:
    is_valid: bool
    score: int
    feedback: list[str] = field(default_factory=list)


def validate_password_strength(password: str) -> PasswordCheck:
    """Score a password 0..5 and list what it is missing."""
    feedback = []
    score = 0

    if len(password) >= 12:
        score += 2
    elif len(password) >= MIN_PASSWORD_LENGTH:
        score += 1
    else:
        feedback.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    checks = [
        (re.search(r"[a-z]", password), "Include lowercase letters"),
        (re.search(r"[A-Z]", password), "Include uppercase letters"),
        (re.search(r"\d", password), "Include numbers"),
        (SPECIAL_RE.search(password), "Include special characters"),
    ]
    complex_enough = True
    for matched, hint in checks:
        if matched:
            score += 1
        else:
            complex_enough = False
            feedback.append(hint)

    if any(p.search(password) for p in COMMON_PATTERNS):
        score -= 2
        feedback.append("Avoid common patterns and obvious words")

    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        feedback.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        complex_enough = False

    is_valid = len(password) >= MIN_PASSWORD_LENGTH and complex_enough and score >= 4
    return PasswordCheck(is_valid=is_valid, score=max(0, min(5, score)), feedback=feedback)


class PasswordHasher:
    """bcrypt via passlib with a configurable cost factor."""

    def __init__(self, rounds: int = 12):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, plain: str, hashed: str) -> bool:
        try:
            return self.context.verify(plain, hashed)
        except ValueError:
            # malformed or foreign digest
            return False


class TokenService:
    """Issues and verifies HS256 bearer tokens."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.secret_key
        self.algorithm = settings.algorithm
        self.issuer = settings.token_issuer
        self.audience = settings.token_audience
        self.default_ttl = timedelta(minutes=settings.access_token_expire_minutes)

    def issue(
        self,
        user_id: str,
        email: str,
        role: str,
        permissions: list[str],
        ttl: timedelta | None = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (ttl if ttl is not None else self.default_ttl)
        to_encode = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "permissions": list(permissions),
            "jti": str(uuid.uuid4()),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": expire,
            "type": "access",
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError as exc:
            raise ExpiredToken("Token expired") from exc
        except JWTError as exc:
            raise InvalidToken("Invalid token") from exc

        if payload.get("type") != "access" or not payload.get("sub") or not payload.get("jti"):
            raise InvalidToken("Invalid token")
        return TokenClaims(
            user_id=payload["sub"],
            email=payload.get("email", ""),
            role=payload.get("role", "user"),
            permissions=list(payload.get("permissions") or []),
            jti=payload["jti"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
