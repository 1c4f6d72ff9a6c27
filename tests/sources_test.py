import os

import pytest

from jcompile._impl.context import BuildContext
from jcompile._impl.errors import ConfigurationError
from jcompile._impl.release import JavaRelease
from jcompile._impl.sources import MAIN, TEST, PathFilter, SourceDirectory, SourceSetResolver


def _write(path, text="class X {}\n"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return str(path)


def test_path_filter():
    default = PathFilter()
    assert default.matches("Foo.java")
    assert default.matches("org/example/Foo.java")
    assert not default.matches("org/example/readme.txt")
    custom = PathFilter(["org/**/*.java"], ["**/internal/", "**/*Test.java"])
    assert custom.matches("org/Foo.java")
    assert custom.matches("org/a/b/Foo.java")
    assert not custom.matches("com/Foo.java")
    assert not custom.matches("org/internal/Foo.java")
    assert not custom.matches("org/a/FooTest.java")
    assert PathFilter(["*.java"]).matches("Foo.java")
    assert not PathFilter(["*.java"]).matches("org/Foo.java")
    assert PathFilter(["Fo?.java"]).matches("Foo.java")


def test_resolve_single_release(tmp_path):
    src = tmp_path / "src" / "main" / "java"
    b = _write(src / "org" / "B.java")
    a = _write(src / "A.java")
    _write(src / "notes.txt", "")
    resolver = SourceSetResolver([SourceDirectory(str(src))], str(tmp_path / "out"))
    resolved = resolver.resolve(MAIN)
    assert len(resolved.units) == 1
    unit = resolved.units[0]
    assert unit.files == [a, b]
    assert unit.release.is_default()
    assert unit.output_directory == str(tmp_path / "out")
    assert not unit.is_modular
    assert resolver.resolve(TEST).is_empty()


def test_duplicate_and_missing_roots(tmp_path):
    src = tmp_path / "src"
    a = _write(src / "A.java")
    resolver = SourceSetResolver(
        [SourceDirectory(str(src)), SourceDirectory(str(src) + os.sep), SourceDirectory(str(tmp_path / "missing"))],
        str(tmp_path / "out"),
    )
    assert resolver.resolve(MAIN).files == [a]


def test_multi_release(tmp_path):
    java21 = tmp_path / "java21"
    java17 = tmp_path / "java17"
    f21 = _write(java21 / "org" / "Foo.java")
    f17 = _write(java17 / "org" / "Foo.java")
    resolver = SourceSetResolver(
        [SourceDirectory(str(java21), release=JavaRelease(21)), SourceDirectory(str(java17), release=JavaRelease(17))],
        str(tmp_path / "out"),
    )
    units = resolver.resolve(MAIN).units
    assert [str(u.release) for u in units] == ["17", "21"]
    assert units[0].files == [f17]
    assert units[1].files == [f21]
    assert units[0].output_directory == str(tmp_path / "out")
    assert units[1].output_directory == os.path.join(str(tmp_path / "out"), "META-INF", "versions", "21")


def test_global_release(tmp_path):
    src = tmp_path / "src"
    _write(src / "A.java")
    resolver = SourceSetResolver([SourceDirectory(str(src))], str(tmp_path / "out"), release=JavaRelease("1.8"))
    assert str(resolver.resolve(MAIN).units[0].release) == "8"


def test_mixed_default_and_numbered_releases(tmp_path):
    _write(tmp_path / "a" / "A.java")
    _write(tmp_path / "b" / "B.java")
    resolver = SourceSetResolver(
        [SourceDirectory(str(tmp_path / "a")), SourceDirectory(str(tmp_path / "b"), release=JavaRelease(21))],
        str(tmp_path / "out"),
    )
    with pytest.raises(ConfigurationError):
        resolver.resolve(MAIN)


def test_root_inside_output(tmp_path):
    generated = tmp_path / "out" / "generated"
    _write(generated / "A.java")
    resolver = SourceSetResolver([SourceDirectory(str(generated))], str(tmp_path / "out"))
    with pytest.raises(ConfigurationError) as excinfo:
        resolver.resolve(MAIN)
    assert "collides with the output directory" in str(excinfo.value)


def test_module_declared_twice(tmp_path):
    _write(tmp_path / "a" / "module-info.java", "module org.foo {}")
    _write(tmp_path / "b" / "module-info.java", "module org.foo {}")
    resolver = SourceSetResolver(
        [SourceDirectory(str(tmp_path / "a")), SourceDirectory(str(tmp_path / "b"))], str(tmp_path / "out")
    )
    with pytest.raises(ConfigurationError) as excinfo:
        resolver.resolve(MAIN)
    assert "Module org.foo is declared by both" in str(excinfo.value)


def test_modular_main_and_patched_tests(tmp_path):
    main = tmp_path / "main"
    test = tmp_path / "test"
    _write(main / "module-info.java", "module org.foo { exports org.foo; }")
    _write(main / "org" / "foo" / "Foo.java")
    _write(test / "org" / "foo" / "FooTest.java")
    context = BuildContext()
    resolver = SourceSetResolver(
        [SourceDirectory(str(main)), SourceDirectory(str(test), TEST)],
        str(tmp_path / "classes"),
        str(tmp_path / "test-classes"),
        context=context,
    )
    main_unit = resolver.resolve(MAIN).units[0]
    assert main_unit.modules == {"org.foo": [str(main)]}
    assert main_unit.module_name == "org.foo"
    assert context.project_modules == {"org.foo": [str(main)]}
    tests = resolver.resolve(TEST)
    assert tests.main_module == "org.foo"
    assert tests.overwrite is None
    test_unit = tests.units[0]
    assert test_unit.patched_module == "org.foo"
    assert test_unit.is_modular
    assert test_unit.output_directory == str(tmp_path / "test-classes")


def test_test_module_info_overwrites_main(tmp_path):
    main = tmp_path / "main"
    test = tmp_path / "test"
    _write(main / "module-info.java", "module foo {}")
    test_module_info = _write(test / "module-info.java", "open module test { requires foo; }")
    resolver = SourceSetResolver(
        [SourceDirectory(str(main)), SourceDirectory(str(test), TEST)], str(tmp_path / "classes"), str(tmp_path / "test-classes")
    )
    tests = resolver.resolve(TEST)
    assert tests.overwrite is not None
    assert tests.overwrite.test_module_info == test_module_info
    assert tests.overwrite.main_module == "foo"
    assert tests.overwrite.main_output_directory == str(tmp_path / "classes")
    assert tests.units[0].patched_module == "foo"


def test_main_module_name_is_cached(tmp_path):
    main = tmp_path / "main"
    _write(main / "module-info.java", "module org.foo {}")
    context = BuildContext()
    resolver = SourceSetResolver([SourceDirectory(str(main))], str(tmp_path / "out"), context=context)
    assert resolver.main_module_name() == "org.foo"
    (main / "module-info.java").write_text("module org.renamed {}")
    assert resolver.main_module_name() == "org.foo"
    fresh = SourceSetResolver([SourceDirectory(str(main))], str(tmp_path / "out"), context=BuildContext())
    assert fresh.main_module_name() == "org.renamed"


def test_invalid_scope():
    with pytest.raises(ConfigurationError):
        SourceDirectory("src", scope="integration")
