import os
import zipfile

import pytest

from jcompile._impl import modules
from jcompile._impl.errors import ConfigurationError
from jcompile._impl.modules import (
    JavaModuleDescriptor,
    describe_jar,
    get_transitive_closure,
    is_valid_module_name,
    parse_describe_module_output,
    parse_module_info,
)


def test_parse_module_info():
    descriptor = parse_module_info(
        """
        import java.lang.annotation.Documented;

        /** The foo module. */
        @Deprecated(since = "2")
        open module org.foo {
            requires transitive org.api;
            requires static org.optional;
            exports org.foo.api;
            exports org.foo.internal to org.bar, org.baz;
            opens org.foo.model;
            uses org.foo.spi.Plugin;
            provides org.foo.spi.Plugin with org.foo.impl.DefaultPlugin, org.foo.impl.OtherPlugin;
        }
        """
    )
    assert descriptor.name == "org.foo"
    assert descriptor.open
    assert descriptor.requires == {"org.api": {"transitive"}, "org.optional": {"static"}, "java.base": {"mandated"}}
    assert descriptor.exports == {"org.foo.api": [], "org.foo.internal": ["org.bar", "org.baz"]}
    assert descriptor.opens == frozenset(["org.foo.model"])
    assert descriptor.uses == frozenset(["org.foo.spi.Plugin"])
    assert descriptor.provides == {"org.foo.spi.Plugin": ["org.foo.impl.DefaultPlugin", "org.foo.impl.OtherPlugin"]}


def test_parse_module_info_errors():
    with pytest.raises(ConfigurationError):
        parse_module_info("class Foo {}", "Foo.java")
    with pytest.raises(ConfigurationError):
        parse_module_info("module org.foo { frobnicates org.bar; }")


def test_module_names():
    assert is_valid_module_name("org.foo")
    assert is_valid_module_name("foo$bar")
    assert not is_valid_module_name("")
    assert not is_valid_module_name("org..foo")
    assert not is_valid_module_name("org.3d")


def test_describe_module_output():
    descriptor = parse_describe_module_output(
        [
            "releases: 9",
            "",
            "org.foo@1.0 jar:file:///tmp/foo.jar!/module-info.class open",
            "exports org.foo.api",
            "requires java.base mandated",
            "requires org.bar transitive",
            "contains org.foo.impl",
        ],
        jarpath="/tmp/foo.jar",
    )
    assert descriptor.name == "org.foo"
    assert descriptor.open
    assert descriptor.exports == {"org.foo.api": []}
    assert "org.bar" in descriptor.requires
    assert "org.foo.impl" in descriptor.packages


def _jar(path, entries):
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def test_describe_jar(tmp_path):
    assert describe_jar(str(tmp_path / "missing.jar")) is None
    plain = _jar(str(tmp_path / "plain.jar"), {"org/Foo.class": b"\xca\xfe\xba\xbe"})
    assert describe_jar(plain) is None
    automatic = _jar(
        str(tmp_path / "automatic.jar"),
        {"META-INF/MANIFEST.MF": "Manifest-Version: 1.0\r\nAutomatic-Module-Name: org.auto\r\n\r\n"},
    )
    descriptor = describe_jar(automatic)
    assert descriptor.name == "org.auto"
    assert descriptor.automatic
    explicit = _jar(str(tmp_path / "explicit.jar"), {"module-info.class": b"\xca\xfe\xba\xbe"})
    described = describe_jar(explicit, describe=lambda p: [f"org.explicit file://{p}", "requires java.base mandated"])
    assert described.name == "org.explicit"
    assert described.jarpath == explicit


def test_describe_class_directory(tmp_path, monkeypatch):
    assert describe_jar(str(tmp_path)) is None
    (tmp_path / "module-info.class").write_bytes(b"\xca\xfe\xba\xbe")
    commands = []

    def javap(args, **kwargs):
        commands.append(args)
        return 0, (
            'Compiled from "module-info.java"\n'
            "module org.classes@1.0-SNAPSHOT {\n"
            "  requires java.base;\n"
            "  requires transitive org.api;\n"
            "  exports org.classes;\n"
            "  exports org.classes.internal to org.friend;\n"
            "  uses org.classes.spi.Plugin;\n"
            "}\n"
        )

    monkeypatch.setattr(modules, "run_and_capture", javap)
    descriptor = describe_jar(str(tmp_path))
    assert os.path.basename(commands[0][0]).startswith("javap")
    assert commands[0][1:] == [str(tmp_path / "module-info.class")]
    assert descriptor.name == "org.classes"
    assert descriptor.requires["org.api"] == {"transitive"}
    assert descriptor.exports == {"org.classes": [], "org.classes.internal": ["org.friend"]}
    assert descriptor.jarpath == str(tmp_path)

    monkeypatch.setattr(modules, "run_and_capture", lambda args, **kwargs: (1, "error: bad class file"))
    with pytest.raises(ConfigurationError):
        describe_jar(str(tmp_path))


def test_transitive_closure():
    a = JavaModuleDescriptor("a", {}, {"b": set(), "c": {"static"}})
    b = JavaModuleDescriptor("b", {}, {"d": {"transitive"}})
    c = JavaModuleDescriptor("c", {}, {})
    d = JavaModuleDescriptor("d", {}, {})
    assert get_transitive_closure([a], [a, b, c, d]) == {a, b, c, d}
    assert get_transitive_closure(["a"], [a, b, c, d], lambda modifiers: "static" not in modifiers) == {a, b, d}
    with pytest.raises(ConfigurationError):
        get_transitive_closure([a], [a, c])
    assert get_transitive_closure([a], [a, c], strict=False) == {a, c}
