"""Tests for input format validators."""

import pytest
from django.core.exceptions import ValidationError

from server.apps.sharing.validators import (
    validate_group_name,
    validate_password,
    validate_username,
)


@pytest.mark.parametrize('name', [
    'alice_smith',
    'TeamAlpha-01',
    'a' * 20,
    'abcdefgh',
])
def test_valid_names(name):
    """Test names matching every rule pass for users and groups."""
    validate_username(name)
    validate_group_name(name)


@pytest.mark.parametrize(('name', 'message'), [
    ('short', 'between 8 and 20'),
    ('a' * 21, 'between 8 and 20'),
    ('1team-alpha', 'begin with a letter'),
    ('_team-alpha', 'begin with a letter'),
    ('team alpha', 'special symbols'),
    ('team/alpha', 'special symbols'),
    ('team.alpha', 'special symbols'),
])
def test_invalid_names(name, message):
    """Test each name rule reports its own message."""
    with pytest.raises(ValidationError, match=message):
        validate_group_name(name)


def test_valid_password():
    """Test a long password with a digit and a special char passes."""
    validate_password('secret-pass1!')


@pytest.mark.parametrize(('password', 'message'), [
    ('sh0rt!', 'longer than 9'),
    ('no-digits-here!', 'at least one number'),
    ('nospecial123', 'special char'),
])
def test_invalid_passwords(password, message):
    """Test each password rule reports its own message."""
    with pytest.raises(ValidationError, match=message):
        validate_password(password)
