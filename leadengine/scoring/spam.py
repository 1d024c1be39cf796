"""
Fake-lead detector — hard rules only, independent of every score.

Runs alongside the calculators, never after them: a high score can't hide a
fake flag and a flagged lead still gets real scores so both can be audited.
"""
import re

from leadengine.scoring.base import LeadRecord, FakeLeadCheck

PLACEHOLDER_NAMES = [
    re.compile(p, re.I) for p in (
        r'^test\b', r'^fake\b', r'^asdf', r'^qwerty', r'^xxx', r'^a{3,}$',
        r'^123', r'^n/?a$', r'^none$', r'^null$', r'^undefined$', r'^demo\b',
        r'^sample\b', r'^dummy\b',
    )
]

DISPOSABLE_EMAILS = [
    re.compile(p, re.I) for p in (
        r'^test@', r'^fake@', r'^asdf', r'^qwerty', r'@example\.(com|org|net)$',
        r'\.(test|invalid|example|localhost)$', r'mailinator', r'tempmail',
        r'temp[-_]mail', r'guerrillamail', r'@yopmail', r'10minutemail',
        r'throwaway', r'trash[-_]?mail', r'disposable',
    )
]

_PHONE_ALLOWED = re.compile(r'^[\d\s+().\-]+$')
_SEQUENTIAL = ('0123456789', '1234567890', '9876543210')


def _placeholder_name(record: LeadRecord) -> bool:
    name = (record.full_name or '').strip()
    return bool(name) and any(p.search(name) for p in PLACEHOLDER_NAMES)


def _disposable_email(record: LeadRecord) -> bool:
    email = record.email or ''
    return bool(email) and any(p.search(email) for p in DISPOSABLE_EMAILS)


def _invalid_phone(record: LeadRecord) -> bool:
    phone = record.phone
    if not phone:
        return False
    if not _PHONE_ALLOWED.match(phone):
        return True
    digits = re.sub(r'\D', '', phone)
    if not 7 <= len(digits) <= 15:
        return True
    if re.search(r'(\d)\1{6,}', digits):
        return True
    return any(seq[:9] in digits for seq in _SEQUENTIAL)


RULES = [
    ('placeholder_name', _placeholder_name),
    ('disposable_email', _disposable_email),
    ('invalid_phone', _invalid_phone),
    ('honeypot_filled', lambda r: bool(r.honeypot)),
    ('test_data_marker', lambda r: r.is_test),
]


def detect_fake_lead(record: LeadRecord) -> FakeLeadCheck:
    flags = [name for name, rule in RULES if rule(record)]
    return FakeLeadCheck(is_fake=bool(flags), flags=flags)
