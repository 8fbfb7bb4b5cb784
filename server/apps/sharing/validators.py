"""Input format validation for usernames, group names and passwords."""

from typing import Final

from django.core.validators import RegexValidator

# Group names double as directory names, so they follow the username rules
_NAME_VALIDATORS: Final = (
    RegexValidator(
        regex=r'^.{8,20}$',
        message='Name should be between 8 and 20 symbols',
    ),
    RegexValidator(
        regex=r'^[a-zA-Z]',
        message='Name should always begin with a letter',
    ),
    RegexValidator(
        regex=r'^[-_0-9a-zA-Z]+\Z',
        message='Name cannot contain special symbols except "-" and "_"',
    ),
)

_PASSWORD_VALIDATORS: Final = (
    RegexValidator(
        regex=r'^.{10,}$',
        message='Password should be longer than 9 symbols',
    ),
    RegexValidator(
        regex=r'[0-9]',
        message='Password should contain at least one number',
    ),
    RegexValidator(
        regex=r'[^-_0-9a-zA-Z]',
        message='Password should contain at least one special char',
    ),
)


def _run(validators: tuple[RegexValidator, ...], target: str) -> None:
    for validator in validators:
        validator(target)


def validate_username(username: str) -> None:
    """Validate a username.

    Args:
        username: Proposed login name.

    Raises:
        ValidationError: On the first rule that does not match.
    """
    _run(_NAME_VALIDATORS, username)


def validate_group_name(group_name: str) -> None:
    """Validate a group name.

    Args:
        group_name: Proposed group name.

    Raises:
        ValidationError: On the first rule that does not match.
    """
    _run(_NAME_VALIDATORS, group_name)


def validate_password(password: str) -> None:
    """Validate a password.

    Args:
        password: Proposed password in plain text.

    Raises:
        ValidationError: On the first rule that does not match.
    """
    _run(_PASSWORD_VALIDATORS, password)
