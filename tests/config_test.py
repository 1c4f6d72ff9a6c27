import os

import pytest

from jcompile._impl.config import CompilerConfiguration, PomReader, load_configuration
from jcompile._impl.errors import ConfigurationError
from jcompile._impl.sources import MAIN, TEST

POM = """\
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.example</groupId>
  <artifactId>demo</artifactId>
  <version>1.0</version>
  <properties>
    <maven.compiler.release>17</maven.compiler.release>
    <project.build.sourceEncoding>UTF-8</project.build.sourceEncoding>
    <lint>all</lint>
  </properties>
  <build>
    <plugins>
      <plugin>
        <groupId>org.apache.maven.plugins</groupId>
        <artifactId>maven-compiler-plugin</artifactId>
        <configuration>
          <parameters>true</parameters>
          <failOnError>false</failOnError>
          <compilerArgs>
            <arg>-Xlint:${lint}</arg>
            <arg>-Werror</arg>
          </compilerArgs>
          <incrementalCompilation>options,sources,classes</incrementalCompilation>
          <sources>
            <source>
              <directory>src/main/java</directory>
            </source>
            <source>
              <directory>src/main/java21</directory>
              <targetVersion>21</targetVersion>
            </source>
            <source>
              <directory>src/test/java</directory>
              <scope>test</scope>
              <excludes>
                <exclude>**/manual/</exclude>
              </excludes>
            </source>
          </sources>
        </configuration>
      </plugin>
    </plugins>
  </build>
</project>
"""


def _pom(tmp_path, text):
    path = tmp_path / "pom.xml"
    path.write_text(text)
    return str(path)


def test_load_configuration(tmp_path):
    config = load_configuration(_pom(tmp_path, POM))
    assert config.project_directory == str(tmp_path)
    assert config.release == "17"
    assert config.encoding == "UTF-8"
    assert config.parameters
    assert not config.fail_on_error
    assert config.use_module_path
    assert config.compiler_args == ["-Xlint:all", "-Werror"]
    assert config.incremental_compilation == "options,sources,classes"
    assert config.path(config.output_directory) == os.path.join(str(tmp_path), "target", "classes")
    assert config.path(config.test_output_directory) == os.path.join(str(tmp_path), "target", "test-classes")
    assert config.status_path == os.path.join(str(tmp_path), "target", "jcompile-status")
    roots = [(d.root, d.scope, str(d.release) if d.release else None) for d in config.source_directories]
    assert roots == [
        (os.path.join(str(tmp_path), "src", "main", "java"), MAIN, None),
        (os.path.join(str(tmp_path), "src", "main", "java21"), MAIN, "21"),
        (os.path.join(str(tmp_path), "src", "test", "java"), TEST, None),
    ]
    assert config.source_directories[2].excludes == ("**/manual/",)


def test_defaults(tmp_path):
    config = load_configuration(
        _pom(
            tmp_path,
            """<project><modelVersion>4.0.0</modelVersion>
            <build><directory>build</directory></build></project>""",
        )
    )
    assert config.release is None
    assert config.compiler_id == "javac"
    assert config.fail_on_error
    assert config.path(config.output_directory) == os.path.join(str(tmp_path), "build", "classes")
    assert [(d.root, d.scope) for d in config.source_directories] == [
        (os.path.join(str(tmp_path), "src", "main", "java"), MAIN),
        (os.path.join(str(tmp_path), "src", "test", "java"), TEST),
    ]


def test_invalid_values(tmp_path):
    with pytest.raises(ConfigurationError):
        load_configuration(
            _pom(
                tmp_path,
                """<project><properties><maven.compiler.fork>maybe</maven.compiler.fork></properties></project>""",
            )
        )
    with pytest.raises(ConfigurationError):
        load_configuration(
            _pom(tmp_path, """<project><properties><maven.compiler.release>1.11</maven.compiler.release></properties></project>""")
        )
    with pytest.raises(ConfigurationError):
        CompilerConfiguration(proc="sometimes").validate()


def test_pom_reader(tmp_path):
    pom = PomReader(_pom(tmp_path, POM))
    assert pom.get_text("artifactId") == "demo"
    assert pom.get_text("description") is None
    assert pom.get_text("description", "none") == "none"
    try:
        pom["moupId"]
    except KeyError:
        pass
    else:
        assert False, "should have raised KeyError"
    plugin = pom["build/plugins/plugin"]
    assert plugin.tag == "plugin"
    assert [arg.text for arg in plugin.getall("configuration/compilerArgs/arg")] == ["-Xlint:${lint}", "-Werror"]
