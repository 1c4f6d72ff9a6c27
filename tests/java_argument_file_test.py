import os
import tempfile

from jcompile._impl.support import java_argument_file


def test_no_escape():
    for arg in [
        "foo",
        "bar",
        "üöä",
        "[",
        "]",
        "(",
        "*",
        "-",
        "@Test",
        "\\",
        "--module-path",
    ]:
        assert java_argument_file.escape_argument(arg) == arg


def test_escape():
    for arg, escaped_without_quotes in [
        ("", ""),
        (" ", " "),
        ("text with space", "text with space"),
        ("text 'with' quote", "text \\'with\\' quote"),
        ('text "with" quote', 'text \\"with\\" quote'),
        ("text with \\ backslash and space", "text with \\\\ backslash and space"),
        ("'", "\\'"),
        ('"', '\\"'),
        ("\t", "\\t"),
        ("\n", "\\n"),
        ("\r", "\\r"),
        ("\f", "\\f"),
        ("#not-a-comment", "#not-a-comment"),
    ]:
        assert java_argument_file.escape_argument(arg) == f'"{escaped_without_quotes}"', arg


def test_write_arguments():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "sub", "javac.args")
        written = java_argument_file.write_arguments(path, ["-d", "out dir", "Foo.java"])
        assert written == path
        with open(path) as fp:
            assert fp.read().splitlines() == ["-d", '"out dir"', "Foo.java"]
