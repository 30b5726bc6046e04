from hypothesis import given
from hypothesis import strategies as st

from launchpad.core.env_materializer import PLACEHOLDER_PREFIX, generate_env_placeholders

KEYS = st.from_regex(r"[A-Z][A-Z0-9_]{0,12}", fullmatch=True)
VALUES = st.text(alphabet=st.characters(blacklist_characters="\n\r"), max_size=20)
LINES = st.one_of(
    st.tuples(KEYS, VALUES).map(lambda pair: f"{pair[0]}={pair[1]}"),
    st.text(alphabet=st.characters(blacklist_characters="\n\r"), max_size=20).map(
        lambda text: f"# {text}"
    ),
    st.just(""),
)


@given(st.lists(LINES, min_size=1, max_size=20))
def test_placeholders_preserve_line_structure(lines: list[str]) -> None:
    result = generate_env_placeholders("\n".join(lines)).split("\n")

    assert len(result) == len(lines)
    for original, rewritten in zip(lines, result, strict=True):
        if not original or original.startswith("#"):
            assert rewritten == original
        else:
            key = original.split("=", 1)[0]
            assert rewritten == f"{key}={PLACEHOLDER_PREFIX}{key}"
