"""
Data validation utilities.
"""
import re
from datetime import datetime
from typing import Optional

from shared.utilities.date_utils import TS_FORMAT


# Characters that can never appear in a page title
_ILLEGAL_TITLE_CHARS = re.compile(r'[#<>\[\]|{}\x00-\x1f\x7f]')


def validate_title_key(db_key: str) -> bool:
    """
    Validate a page title key (underscores, no spaces).

    Args:
        db_key: Title key such as 'Main_Page'

    Returns:
        True if valid, False otherwise
    """
    if not db_key or ' ' in db_key or len(db_key.encode('utf-8')) > 255:
        return False
    return not _ILLEGAL_TITLE_CHARS.search(db_key)


def normalize_title_key(text: str) -> str:
    """
    Turn display text into a title key.

    Spaces become underscores, runs of them collapse, surrounding
    whitespace is dropped and the first letter is upper-cased.

    Args:
        text: Title text such as 'main page'

    Returns:
        Title key such as 'Main_page'
    """
    key = re.sub(r'[ _]+', '_', text.strip()).strip('_')
    if key:
        key = key[0].upper() + key[1:]
    return key


def validate_timestamp(value: str) -> bool:
    """
    Validate a 14-digit wiki timestamp.

    Args:
        value: Timestamp string

    Returns:
        True if valid, False otherwise
    """
    if not re.match(r'^\d{14}$', value or ''):
        return False
    try:
        datetime.strptime(value, TS_FORMAT)
        return True
    except ValueError:
        return False


def validate_user_id(user_id: Optional[int]) -> bool:
    """
    Validate a registered user id.

    Args:
        user_id: User id

    Returns:
        True if it identifies a registered user
    """
    return isinstance(user_id, int) and not isinstance(user_id, bool) and user_id > 0
