import os

import pytest

from jcompile._impl.compilers import (
    JavacCompiler,
    StubCompiler,
    get_compiler,
    javac_option_arity,
    parse_javac_output,
    split_arguments,
)
from jcompile._impl.config import CompilerConfiguration
from jcompile._impl.diagnostics import ERROR, NOTE, WARNING, Diagnostic
from jcompile._impl.errors import ConfigurationError

JAVAC_OUTPUT = """\
/p/src/Foo.java:3: error: cannot find symbol
        Bar b;
        ^
  symbol:   class Bar
  location: class Foo
/p/src/Foo.java:5: warning: [deprecation] Date(int,int,int) in Date has been deprecated
        new java.util.Date(1, 2, 3);
            ^
Note: Some input files use unchecked or unsafe operations.
error: invalid flag: -foo
2 errors
1 warning
"""


def test_parse_javac_output():
    diagnostics = parse_javac_output(JAVAC_OUTPUT)
    assert [d.kind for d in diagnostics] == [ERROR, WARNING, NOTE, ERROR]
    missing = diagnostics[0]
    assert missing.message == "cannot find symbol\n  symbol:   class Bar\n  location: class Foo"
    assert (missing.source, missing.line, missing.column) == ("/p/src/Foo.java", 3, 9)
    assert missing.code is None
    deprecation = diagnostics[1]
    assert deprecation.code == "deprecation"
    assert deprecation.column == 13
    assert diagnostics[2].message == "Some input files use unchecked or unsafe operations."
    assert diagnostics[3].message == "invalid flag: -foo"
    assert diagnostics[3].source is None


def test_option_arity():
    assert javac_option_arity("--release") == 1
    assert javac_option_arity("-g") == 0
    assert javac_option_arity("-g:lines,vars") == 0
    assert javac_option_arity("-J-Xmx1g") == 0
    assert javac_option_arity("--add-modules=org.foo") == 0
    assert javac_option_arity("--frobnicate") == -1
    assert split_arguments(["-d", "out", "-g", "-Xlint:all", "A.java", "b/B.java"]) == (
        ["-d", "out", "-g", "-Xlint:all"],
        ["A.java", "b/B.java"],
    )


def test_stub_compiler(tmp_path):
    src = tmp_path / "Foo.java"
    src.write_text("package org.example;\nclass Foo {}\n")
    out = tmp_path / "out"
    compiler = StubCompiler()
    reported = []
    assert compiler.compile(["--release", "17", "-d", str(out), str(src)], reported.append)
    assert reported == []
    assert (out / "org" / "example" / "Foo.class").read_bytes().startswith(b"\xca\xfe\xba\xbe")
    invocation = compiler.invocations[0]
    assert invocation.files == [str(src)]
    assert invocation.value_of("--release") == "17"


def test_stub_compiler_failure(tmp_path):
    src = tmp_path / "Foo.java"
    src.write_text("class Foo {}\n")
    compiler = StubCompiler().fail_on(1, [Diagnostic(ERROR, "boom", str(src), 1)])
    reported = []
    assert compiler.compile(["-d", str(tmp_path / "a"), str(src)], reported.append)
    assert not compiler.compile(["-d", str(tmp_path / "b"), str(src)], reported.append)
    assert [d.message for d in reported] == ["boom"]
    assert not os.path.exists(tmp_path / "b")


def test_registry():
    assert isinstance(get_compiler("stub"), StubCompiler)
    javac = get_compiler("javac", CompilerConfiguration(executable="/opt/jdk/bin/javac"))
    assert isinstance(javac, JavacCompiler)
    assert javac.executable == "/opt/jdk/bin/javac"
    with pytest.raises(ConfigurationError):
        get_compiler("ecj")


def test_default_javac(monkeypatch):
    monkeypatch.setenv("JCOMPILE_JAVAC", "/custom/javac")
    assert JavacCompiler().executable == "/custom/javac"
    monkeypatch.delenv("JCOMPILE_JAVAC")
    monkeypatch.delenv("JAVA_HOME", raising=False)
    assert JavacCompiler().executable == "javac"


def test_javac_not_found(tmp_path):
    compiler = JavacCompiler(str(tmp_path / "no-such-javac"))
    reported = []
    assert not compiler.compile(["-d", str(tmp_path), "Foo.java"], reported.append)
    assert reported[0].kind == ERROR
    assert reported[0].message.startswith("Cannot run")
