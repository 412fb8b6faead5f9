import pytest

import gl3w_gen


def test_parse_version_returns_typed_version() -> None:
    version = gl3w_gen.parse_version("4.6")

    assert version.major == 4
    assert version.minor == 6
    assert str(version) == "4.6"


@pytest.mark.parametrize("value", ["4", "4.6.1", "foo", "", "v3.3", "3.x"])
def test_parse_version_invalid_raises_invalid_version(value: str) -> None:
    with pytest.raises(gl3w_gen.ConfigError) as exc_info:
        gl3w_gen.parse_version(value)

    assert exc_info.value.code == "INVALID_VERSION"
    assert "MAJOR.MINOR" in (exc_info.value.suggestion or "")


def test_parse_version_does_not_check_registry_support() -> None:
    # Whether 9.9 exists is decided by the resolver, not the CLI.
    assert gl3w_gen.parse_version("9.9") == gl3w_gen.ApiVersion(9, 9)


def test_api_version_ordering_contract() -> None:
    v33 = gl3w_gen.ApiVersion(3, 3)
    v40 = gl3w_gen.ApiVersion(4, 0)
    v46 = gl3w_gen.ApiVersion(4, 6)

    assert v33 < v40 < v46
    assert v33 <= v33
    assert v46 > v33
    assert not (v46 <= v40)
    assert sorted([v46, v33, v40]) == [v33, v40, v46]


def test_api_version_compares_numerically_not_lexically() -> None:
    assert gl3w_gen.ApiVersion(1, 10) > gl3w_gen.ApiVersion(1, 9)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("core", gl3w_gen.Profile.CORE),
        ("compatibility", gl3w_gen.Profile.COMPATIBILITY),
    ],
)
def test_parse_profile_accepts_known_profiles(
    raw: str, expected: gl3w_gen.Profile
) -> None:
    assert gl3w_gen.parse_profile(raw) is expected


@pytest.mark.parametrize("raw", ["compat", "CORE", "common", ""])
def test_parse_profile_rejects_unknown_profiles(raw: str) -> None:
    with pytest.raises(gl3w_gen.ConfigError) as exc_info:
        gl3w_gen.parse_profile(raw)

    assert exc_info.value.code == "INVALID_PROFILE"


def test_parse_feature_number_reports_element_on_failure() -> None:
    with pytest.raises(gl3w_gen.MalformedRegistry) as exc_info:
        gl3w_gen.parse_feature_number("four", '<feature name="GL_VERSION_4">')

    assert exc_info.value.element == '<feature name="GL_VERSION_4">'
    assert "four" in exc_info.value.reason
