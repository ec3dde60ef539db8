"""Static pattern library (core domain).

Every category tag owns one immutable pattern set, plus a critical set that
lives outside the user-selectable vocabulary. All patterns are compiled once
at import, case-insensitive and unanchored.
"""

from __future__ import annotations

import re
from typing import Iterable, Mapping

from core.categories import CategoryTag


def _compile(patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


CRITICAL_PATTERNS = _compile(
    [
        r"\botp\b",
        r"\bone[- ]time (password|passcode|code)\b",
        r"\bverification code\b",
        r"\bpassword\b",
        r"\bsuspicious (login|sign[- ]?in|activity|transaction|attempt)",
        r"\bunauthori[sz]ed\b",
        r"\bverify (now|immediately|at once)\b",
        r"\bfraud",
        r"\bbank\b.*\bdebit(ed)?\b",
        r"\bcard\b.*\b(lost|stolen|blocked)\b",
        r"\bemergency\b",
        r"\burgent\b",
        r"\bhospital\b",
        r"\baccident\b",
        r"\bambulance\b",
        r"\bpolice\b",
        r"\bsos\b",
        r"\b(fire|smoke|carbon monoxide) (alarm|alert|detected)\b",
        r"\bimmediate(ly)? (attention|action)\b",
    ]
)

PATTERN_SETS: Mapping[CategoryTag, tuple[re.Pattern, ...]] = {
    CategoryTag.SECURITY: _compile(
        [
            r"\botp\b",
            r"\bcode\b",
            r"\bverif(y|ication)\b",
            r"\bpassword\b",
            r"\blog ?in\b",
            r"\bsign[- ]?in\b",
            r"\b2fa\b",
            r"\btwo[- ]factor\b",
            r"\bauthenticat",
            r"\bsecurity\b",
            r"\baccess\b",
        ]
    ),
    CategoryTag.FINANCE: _compile(
        [
            r"\bbank\b",
            r"\bacct\b",
            r"\b(debited|credited)\b",
            r"\bpayments?\b",
            r"\b(credit|debit) card\b",
            r"\bcard ending\b",
            r"\bspent\b",
            r"\bbalance\b",
            r"\bsalary\b",
            r"\bbill\b",
            r"\bdue\b",
            r"\bpaid\b",
            r"\btxn\b",
            r"\btransactions?\b",
            r"\binvoice\b",
            r"\brefund",
        ]
    ),
    CategoryTag.EMERGENCY: _compile(
        [
            r"\bemergency\b",
            r"\bhospital\b",
            r"\baccident\b",
            r"\bambulance\b",
            r"\bpolice\b",
            r"\bsos\b",
            r"\bevacuat",
            r"\b(earthquake|flood|tsunami|tornado|wildfire|storm) (warning|alert|watch)\b",
            r"\bamber alert\b",
        ]
    ),
    CategoryTag.DIRECT_CHATS: _compile(
        [
            r"\bmessages?\b",
            r"\bmessaged you\b",
            r"\bsent you\b",
            r"\bchat\b",
            r"\b(photo|video|sticker|gif|audio|attachment|voice message)\b",
        ]
    ),
    CategoryTag.GROUP_THREADS: _compile(
        [
            r"\bgroup\b",
            r"\bchannel\b",
            r"\bcommunity\b",
            r"\bthread\b",
            r"\b\d+ new messages\b",
            r"\bmessages from \d+ chats\b",
            r"\s@\s",
        ]
    ),
    CategoryTag.MENTIONS: _compile(
        [
            r"(^|\s)@\w+",
            r"\bmentioned you\b",
            r"\breplied\b",
            r"\breply\b",
            r"\btagged you\b",
            r"\bcommented\b",
        ]
    ),
    CategoryTag.CALLS: _compile(
        [
            r"\bmissed (voice |video )?call\b",
            r"\bincoming (voice |video )?call\b",
            r"\b(voice|video) call\b",
            r"\bcalling\b",
            r"\bringing\b",
            r"\bvoicemail\b",
            r"\bcall\b",
        ]
    ),
    CategoryTag.WORK: _compile(
        [
            r"\btasks?\b",
            r"\bproject\b",
            r"\bdeadline\b",
            r"\bassigned\b",
            r"\bpull request\b",
            r"\breview requested\b",
            r"\bstand-?up\b",
            r"\bapproval\b",
            r"\bjira\b",
            r"\bsprint\b",
        ]
    ),
    CategoryTag.MEETINGS: _compile(
        [
            r"\bmeeting\b",
            r"\bcalendar\b",
            r"\binvit(e|ation)\b",
            r"\bschedul",
            r"\bremind",
            r"\bzoom\b",
            r"\bteams\b",
            r"\bgoogle meet\b",
            r"\bstarts in \d+",
            r"\brsvp\b",
            r"\bwebinar\b",
        ]
    ),
    CategoryTag.DOCUMENTS: _compile(
        [
            r"\bdoc(ument)?s?\b",
            r"\b(spread)?sheet\b",
            r"\bpdf\b",
            r"\bslides?\b",
            r"\bshared (a|an) (file|folder|document)\b",
            r"\bedited\b",
        ]
    ),
    CategoryTag.STORAGE: _compile(
        [
            r"\bstorage\b",
            r"\bbackup\b",
            r"\bsync(ed|ing)?\b",
            r"\buploa(d|ded|ding)\b",
            r"\bdrive\b",
            r"\b(icloud|dropbox|onedrive)\b",
            r"\b(almost|is) full\b",
            r"\bquota\b",
        ]
    ),
    CategoryTag.SMART_HOME: _compile(
        [
            r"\bdoorbell\b",
            r"\bthermostat\b",
            r"\bcamera\b",
            r"\bmotion detected\b",
            r"\bfront door\b",
            r"\blights? (turned )?(on|off)\b",
            r"\bvacuum\b",
            r"\bsmart (plug|lock|home)\b",
        ]
    ),
    CategoryTag.HEALTH: _compile(
        [
            r"\bsteps\b",
            r"\bheart rate\b",
            r"\bworkout\b",
            r"\bmedication\b",
            r"\bpills?\b",
            r"\bsleep\b",
            r"\bappointment\b",
            r"\bdoctor\b",
            r"\bhydrat",
            r"\bcalories\b",
            r"\bfitness\b",
        ]
    ),
    CategoryTag.TRANSPORT: _compile(
        [
            r"\bride\b",
            r"\bdriver\b",
            r"\barriving\b",
            r"\bflight\b",
            r"\bgate\b",
            r"\bboarding\b",
            r"\btrain\b",
            r"\bbus\b",
            r"\btraffic\b",
            r"\bpick(ed)? ?up\b",
            r"\bdelayed\b",
        ]
    ),
    CategoryTag.SHOPPING: _compile(
        [
            r"\border(ed)?\b",
            r"\bdeliver(y|ed)\b",
            r"\bout for delivery\b",
            r"\bshipp(ed|ing)\b",
            r"\bshipment\b",
            r"\b(package|parcel)\b",
            r"\btrack(ing)?\b",
            r"\bcart\b",
            r"\bback in stock\b",
        ]
    ),
    CategoryTag.ENTERTAINMENT: _compile(
        [
            r"\bnew episode\b",
            r"\bstream(ing)?\b",
            r"\blive now\b",
            r"\bwatch\b",
            r"\bplaylist\b",
            r"\bnew (song|album|release|season)\b",
            r"\bpodcast\b",
            r"\bgame\b",
            r"\bstreak\b",
            r"\btrailer\b",
        ]
    ),
    CategoryTag.NEWS: _compile(
        [
            r"\bnews\b",
            r"\bbreaking\b",
            r"\bheadlines?\b",
            r"\bjust in\b",
            r"\bdeveloping story\b",
        ]
    ),
    CategoryTag.UPDATES: _compile(
        [
            r"\bupdat(e|ed|es|ing)\b",
            r"\bdownload(ed|ing)?\b",
            r"\binstall(ed|ing)?\b",
            r"\bbattery\b",
            r"\busb\b",
            r"\bsystem\b",
            r"\bnew version\b",
            r"\brestart\b",
        ]
    ),
    CategoryTag.PROMOTIONS: _compile(
        [
            r"\boffers?\b",
            r"\bsale\b",
            r"\bdiscount",
            r"\bpromo(tion|code)?s?\b",
            r"\bdeals?\b",
            r"\bfree\b",
            r"\d+\s?% off\b",
            r"\bcoupons?\b",
            r"\bcashback\b",
            r"\brewards?\b",
            r"\bgift\b",
            r"\blimited time\b",
            r"\btoday only\b",
            r"\bexclusive\b",
        ]
    ),
}

# System chatter from messaging apps that must not count as a direct message.
CHAT_NOISE_PATTERNS = _compile(
    [
        r"\bchecking for (new )?messages\b",
        r"\bsyncing\b",
        r"\bconnected\b",
        r"\bbackup\b",
        r"\bstatus\b",
    ]
)


def _any_match(patterns: Iterable[re.Pattern], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def match(tag: CategoryTag, combined_text: str) -> bool:
    """Return True when any pattern in the tag's set occurs in the text."""

    return _any_match(PATTERN_SETS[tag], combined_text)


def is_critical(combined_text: str) -> bool:
    """Safety net that ignores user configuration entirely."""

    return _any_match(CRITICAL_PATTERNS, combined_text)


def is_chat_noise(combined_text: str) -> bool:
    return _any_match(CHAT_NOISE_PATTERNS, combined_text)
