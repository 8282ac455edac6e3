"""Random password generation for new vault entries."""

import secrets
import string

from .exceptions import ValidationError

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

DEFAULT_LENGTH = 16
MIN_LENGTH = 4  # one character from each class


def generate_password(length: int = DEFAULT_LENGTH) -> str:
    """
    Generate a random password.

    The result always contains at least one uppercase letter, one lowercase
    letter, one digit and one symbol; the remaining characters are drawn from
    all four classes and the whole is shuffled.

    Args:
        length: Password length (at least 4)

    Returns:
        The generated password
    """
    if length < MIN_LENGTH:
        raise ValidationError(f"Password length must be at least {MIN_LENGTH}", field="length")

    rng = secrets.SystemRandom()
    alphabet = UPPERCASE + LOWERCASE + DIGITS + SYMBOLS

    chars = [
        rng.choice(UPPERCASE),
        rng.choice(LOWERCASE),
        rng.choice(DIGITS),
        rng.choice(SYMBOLS),
    ]
    chars.extend(rng.choice(alphabet) for _ in range(length - MIN_LENGTH))
    rng.shuffle(chars)
    return "".join(chars)
