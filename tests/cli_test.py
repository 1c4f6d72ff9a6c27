import os
import zipfile

import pytest

from jcompile._impl import cli
from jcompile._impl.support.options import _opts

POM = """\
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.example</groupId>
  <artifactId>app</artifactId>
  <version>1.0</version>
  <properties>
    <maven.compiler.release>17</maven.compiler.release>
  </properties>
</project>
"""


@pytest.fixture(autouse=True)
def restore_options():
    saved = dict(vars(_opts))
    yield
    for name, value in saved.items():
        setattr(_opts, name, value)


def _project(tmp_path):
    (tmp_path / "pom.xml").write_text(POM)
    source = tmp_path / "src" / "main" / "java" / "org" / "app" / "App.java"
    source.parent.mkdir(parents=True)
    source.write_text("package org.app;\npublic class App {}\n")
    return str(tmp_path / "pom.xml")


def test_compile(tmp_path, capsys):
    pom = _project(tmp_path)
    assert cli.main(["compile", "--pom", pom, "--compiler", "stub", "-d", "compile=/lib/a.jar"]) == 0
    assert os.path.exists(tmp_path / "target" / "classes" / "org" / "app" / "App.class")
    assert "Compiling all files." in capsys.readouterr().out
    assert cli.main(["compile", "--pom", pom, "--compiler", "stub", "-d", "compile=/lib/a.jar"]) == 0
    assert "Nothing to compile - all classes are up to date." in capsys.readouterr().out


def test_replaced_dependency_triggers_rebuild(tmp_path, capsys):
    pom = _project(tmp_path)
    jar = tmp_path / "lib.jar"
    with zipfile.ZipFile(jar, "w") as zf:
        zf.writestr("org/lib/A.class", b"\xca\xfe\xba\xbe")
    args = ["compile", "--pom", pom, "--compiler", "stub", "-d", f"compile={jar}"]
    assert cli.main(args) == 0
    capsys.readouterr()
    with zipfile.ZipFile(jar, "w") as zf:
        zf.writestr("org/lib/B.class", b"\xca\xfe\xba\xbe\x00")
    assert cli.main(args) == 0
    assert "Recompiling all files because some dependencies changed." in capsys.readouterr().out


def test_quiet(tmp_path, capsys):
    pom = _project(tmp_path)
    assert cli.main(["--quiet", "compile", "--pom", pom, "--compiler", "stub"]) == 0
    assert capsys.readouterr().out == ""


def test_invalid_arguments(tmp_path, capsys):
    pom = _project(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["compile", "--pom", pom, "--compiler", "stub", "-d", "/lib/a.jar"])
    assert excinfo.value.code == 1
    assert "Invalid dependency '/lib/a.jar'" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        cli.main(["compile", "--pom", pom, "--compiler", "frobnicate"])
    assert "Unknown compiler 'frobnicate'" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        cli.main(["compile", "--pom", pom, "--compiler", "stub", "--incremental", "sources,bogus"])
    assert 'Illegal incremental build setting: "bogus"' in capsys.readouterr().err


def test_missing_project(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["compile", "--pom", str(tmp_path / "pom.xml")])
    assert excinfo.value.code == 1
    assert "pom.xml" in capsys.readouterr().err
