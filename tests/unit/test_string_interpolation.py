import pytest

from dconverge.MODELS.errors import InterpolationError
from dconverge.UTILS.string_interpolation import EnvironmentInterpolator


@pytest.fixture
def interpolator():
    return EnvironmentInterpolator({'NAME': 'web', 'EMPTY': ''})


@pytest.mark.parametrize('template, expected', [
    ('$NAME', 'web'),
    ('${NAME}_1', 'web_1'),
    ('$$NAME', '$NAME'),
    ('${MISSING:-dflt}', 'dflt'),
    ('${EMPTY:-dflt}', 'dflt'),
    ('${EMPTY-dflt}', ''),
    ('${NAME:+set}', 'set'),
    ('${EMPTY:+set}', ''),
    ('${EMPTY+set}', 'set'),
    ('${MISSING+set}', ''),
    ('plain text', 'plain text'),
])
def test_interpolate(interpolator, template, expected):
    assert interpolator.interpolate(template) == expected


def test_unset_variable_is_blank(interpolator, caplog):
    assert interpolator.interpolate('a${MISSING}b') == 'ab'
    assert 'MISSING' in caplog.text


def test_required_variable(interpolator):
    assert interpolator.interpolate('${NAME:?needed}') == 'web'
    assert interpolator.interpolate('${EMPTY?needed}') == ''
    with pytest.raises(InterpolationError, match='needed'):
        interpolator.interpolate('${EMPTY:?needed}')


def test_interpolate_all_leaves_keys(interpolator):
    value = {'$NAME': ['${NAME}', 3, {'k': '$NAME'}]}
    assert interpolator.interpolate_all(value) == {'$NAME': ['web', 3, {'k': 'web'}]}
