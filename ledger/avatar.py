"""Avatar option sets, defaults and boundary validation."""

import logging
from dataclasses import replace
from typing import Any, Optional

from rapidfuzz import process
from rapidfuzz.distance import JaroWinkler

from ledger import AVATAR_KEYS, AvatarConfig

log = logging.getLogger(__name__)

# Minimum Jaro-Winkler similarity for suggesting a legal value
SUGGESTION_CUTOFF = 0.85

_HAIR_COLORS = (
    'Auburn', 'Black', 'Blonde', 'BlondeGolden', 'Blue', 'Brown',
    'BrownDark', 'PastelPink', 'Platinum', 'Red', 'SilverGray',
)

AVATAR_OPTIONS: dict[str, tuple[str, ...]] = {
    'avatar_style': ('Circle', 'Transparent'),
    'top_type': (
        'NoHair', 'Eyepatch', 'Hat', 'Hijab', 'Turban',
        'WinterHat1', 'WinterHat2', 'WinterHat3', 'WinterHat4',
        'LongHairBigHair', 'LongHairBob', 'LongHairBun', 'LongHairCurly',
        'LongHairCurvy', 'LongHairDreads', 'LongHairFrida', 'LongHairFro',
        'LongHairFroBand', 'LongHairNotTooLong', 'LongHairShavedSides',
        'LongHairMiaWallace', 'LongHairStraight', 'LongHairStraight2',
        'LongHairStraightStrand',
        'ShortHairDreads01', 'ShortHairDreads02', 'ShortHairFrizzle',
        'ShortHairShaggyMullet', 'ShortHairShortCurly', 'ShortHairShortFlat',
        'ShortHairShortRound', 'ShortHairShortWaved', 'ShortHairSides',
        'ShortHairTheCaesar', 'ShortHairTheCaesarSidePart',
    ),
    'accessories_type': (
        'Blank', 'Kurt', 'Prescription01', 'Prescription02', 'Round',
        'Sunglasses', 'Wayfarers',
    ),
    'hair_color': _HAIR_COLORS,
    'facial_hair_type': (
        'Blank', 'BeardMedium', 'BeardLight', 'BeardMajestic',
        'MoustacheFancy', 'MoustacheMagnum',
    ),
    'facial_hair_color': (
        'Auburn', 'Black', 'Blonde', 'BlondeGolden', 'Brown', 'BrownDark',
        'Platinum', 'Red',
    ),
    'clothe_type': (
        'BlazerShirt', 'BlazerSweater', 'CollarSweater', 'GraphicShirt',
        'Hoodie', 'Overall', 'ShirtCrewNeck', 'ShirtScoopNeck', 'ShirtVNeck',
    ),
    'clothe_color': (
        'Black', 'Blue01', 'Blue02', 'Blue03', 'Gray01', 'Gray02', 'Heather',
        'PastelBlue', 'PastelGreen', 'PastelOrange', 'PastelRed',
        'PastelYellow', 'Pink', 'Red', 'White',
    ),
    'graphic_type': (
        'Bat', 'Cumbia', 'Deer', 'Diamond', 'Hola', 'Pizza', 'Resist',
        'Selena', 'Bear', 'SkullOutline', 'Skull',
    ),
    'eye_type': (
        'Close', 'Cry', 'Default', 'Dizzy', 'EyeRoll', 'Happy', 'Hearts',
        'Side', 'Squint', 'Surprised', 'Wink', 'WinkWacky',
    ),
    'eyebrow_type': (
        'Angry', 'AngryNatural', 'Default', 'DefaultNatural', 'FlatNatural',
        'RaisedExcited', 'RaisedExcitedNatural', 'SadConcerned',
        'SadConcernedNatural', 'UnibrowNatural', 'UpDown', 'UpDownNatural',
    ),
    'mouth_type': (
        'Concerned', 'Default', 'Disbelief', 'Eating', 'Grimace', 'Sad',
        'ScreamOpen', 'Serious', 'Smile', 'Tongue', 'Twinkle', 'Vomit',
    ),
    'skin_color': (
        'Tanned', 'Yellow', 'Pale', 'Light', 'Brown', 'DarkBrown', 'Black',
    ),
}

# Physically defining traits, weighted higher in matching
PRIMARY_MATCHING_ATTRIBUTES: tuple[str, ...] = (
    'skin_color',
    'top_type',
    'hair_color',
    'facial_hair_type',
    'accessories_type',
)

# Expression and style choices
SECONDARY_MATCHING_ATTRIBUTES: tuple[str, ...] = (
    'eye_type',
    'eyebrow_type',
    'mouth_type',
    'clothe_type',
    'clothe_color',
    'facial_hair_color',
    'graphic_type',
)

ALL_MATCHING_ATTRIBUTES = PRIMARY_MATCHING_ATTRIBUTES + SECONDARY_MATCHING_ATTRIBUTES

DEFAULT_AVATAR_CONFIG = AvatarConfig(
    avatar_style='Circle',
    top_type='ShortHairShortFlat',
    accessories_type='Blank',
    hair_color='Brown',
    facial_hair_type='Blank',
    facial_hair_color='Brown',
    clothe_type='ShirtCrewNeck',
    clothe_color='Blue01',
    graphic_type='Bat',
    eye_type='Default',
    eyebrow_type='Default',
    mouth_type='Default',
    skin_color='Light',
)

_NAMES_BY_KEY = {key: name for name, key in AVATAR_KEYS.items()}


def is_valid_avatar_option(attribute: str, value: Any) -> bool:
    """Check whether value is a legal option for attribute (case-sensitive)."""
    options = AVATAR_OPTIONS.get(attribute)
    if options is None or not isinstance(value, str):
        return False
    return value in options


def is_valid_avatar_config(data: Any) -> bool:
    """Check a camelCase avatar record.

    Every known key must carry a legal value. Unknown keys are ignored,
    and an empty record is valid (it only means "use the defaults").
    """
    if not isinstance(data, dict):
        return False
    for key, value in data.items():
        name = _NAMES_BY_KEY.get(key)
        if name is not None and not is_valid_avatar_option(name, value):
            return False
    return True


def create_avatar_config(overrides: Optional[dict] = None) -> AvatarConfig:
    """Return the default avatar with the given camelCase overrides applied.

    Neither the overrides nor DEFAULT_AVATAR_CONFIG are modified.
    """
    if not overrides:
        return DEFAULT_AVATAR_CONFIG
    changes = {
        _NAMES_BY_KEY[key]: value
        for key, value in overrides.items()
        if key in _NAMES_BY_KEY
    }
    return replace(DEFAULT_AVATAR_CONFIG, **changes)


def suggest_option(attribute: str, value: str) -> Optional[str]:
    """Find the closest legal option for a mistyped value.

    Args:
        attribute: Attribute name (snake_case).
        value: The value that failed validation.

    Returns:
        The best legal option above SUGGESTION_CUTOFF, or None.
    """
    options = AVATAR_OPTIONS.get(attribute)
    if not options or not isinstance(value, str) or not value:
        return None
    best = process.extractOne(
        value, options,
        scorer=JaroWinkler.similarity,
        processor=str.lower,
        score_cutoff=SUGGESTION_CUTOFF,
    )
    return best[0] if best else None


def validate_avatar(avatar: AvatarConfig) -> list[str]:
    """Detect values outside the option sets.

    Meant for the data-access boundary; the scorer itself tolerates such
    values and treats them as mismatches.

    Args:
        avatar: Avatar to check.

    Returns:
        List of issue codes, e.g. ``UNKNOWN_VALUE:hair_color=Purple``
        optionally followed by `` (did you mean 'Pink'?)``.
    """
    issues: list[str] = []
    for name in AVATAR_KEYS:
        value = getattr(avatar, name)
        if value is None or is_valid_avatar_option(name, value):
            continue
        issue = f'UNKNOWN_VALUE:{name}={value}'
        suggestion = suggest_option(name, value)
        if suggestion:
            issue += f" (did you mean '{suggestion}'?)"
        issues.append(issue)

    if issues:
        log.debug("Avatar has %d unknown values", len(issues))
    return issues
