import hashlib
import os

import pytest

from jcompile._impl import goals
from jcompile._impl.compilers import StubCompiler
from jcompile._impl.config import CompilerConfiguration
from jcompile._impl.dependencies import DependencyResolution, ResolvedDependency
from jcompile._impl.diagnostics import ERROR, Diagnostic
from jcompile._impl.errors import CompilationFailureException
from jcompile._impl.executor import MODULE_PATCH_ARGS
from jcompile._impl.incremental import FULL_REBUILD, INCREMENTAL, NO_OP
from jcompile._impl.release import JavaRelease
from jcompile._impl.sources import MAIN, TEST, SourceDirectory


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return str(path)


def _digest(path):
    with open(path, "rb") as fp:
        return hashlib.sha256(fp.read()).hexdigest()


class Project:
    def __init__(self, root, directories=None, **settings):
        self.root = root
        self.main = root / "src" / "main" / "java"
        self.test = root / "src" / "test" / "java"
        self.out = root / "target" / "classes"
        self.test_out = root / "target" / "test-classes"
        if directories is None:
            directories = [SourceDirectory(str(self.main), MAIN), SourceDirectory(str(self.test), TEST)]
        self.config = CompilerConfiguration(directories, project_directory=str(root), **settings)

    def compile(self, resolution=None, compiler=None):
        compiler = compiler or StubCompiler()
        result = goals.CompilerGoal(self.config, resolution, compiler).execute()
        return result, compiler

    def test_compile(self, resolution=None, compiler=None):
        compiler = compiler or StubCompiler()
        result = goals.TestCompilerGoal(self.config, resolution, compiler).execute()
        return result, compiler


def _abc_project(tmp_path, **settings):
    project = Project(tmp_path, **settings)
    _write(project.main / "org" / "app" / "A.java", "package org.app;\npublic class A {}\n")
    _write(project.main / "org" / "app" / "B.java", "package org.app;\npublic class B { A a; }\n")
    _write(project.main / "org" / "app" / "C.java", "package org.app;\npublic class C {}\n")
    return project


def test_no_sources(tmp_path, capsys):
    project = Project(tmp_path)
    result, compiler = project.compile()
    assert result.decision is None
    assert result.up_to_date
    assert compiler.invocations == []
    assert "No sources to compile." in capsys.readouterr().out


def test_full_build_then_nothing_to_do(tmp_path, capsys):
    project = _abc_project(tmp_path)
    result, compiler = project.compile()
    assert result.decision.kind == FULL_REBUILD
    assert result.success
    assert len(compiler.invocations) == 1
    assert sorted(os.listdir(project.out / "org" / "app")) == ["A.class", "B.class", "C.class"]
    assert "Compiling all files." in capsys.readouterr().out

    result, compiler = project.compile()
    assert result.decision.kind == NO_OP
    assert result.up_to_date
    assert compiler.invocations == []
    assert "Nothing to compile - all classes are up to date." in capsys.readouterr().out


def test_incremental_build(tmp_path):
    project = _abc_project(tmp_path)
    project.compile()
    a = _write(project.main / "org" / "app" / "A.java", "package org.app;\npublic class A { int value; }\n")
    result, compiler = project.compile()
    assert result.decision.kind == INCREMENTAL
    assert len(compiler.invocations) == 1
    invocation = compiler.invocations[0]
    assert invocation.files == [a, str(project.main / "org" / "app" / "B.java")]
    assert invocation.value_of("--class-path").split(os.pathsep)[0] == str(project.out)


def test_removed_source(tmp_path, capsys):
    project = _abc_project(tmp_path)
    project.compile()
    capsys.readouterr()
    os.remove(project.main / "org" / "app" / "C.java")
    result, compiler = project.compile()
    assert result.decision.kind == INCREMENTAL
    assert compiler.invocations == []
    assert sorted(os.listdir(project.out / "org" / "app")) == ["A.class", "B.class"]
    assert "Deleting the classes of 1 removed source file." in capsys.readouterr().out


def test_changed_options(tmp_path, capsys):
    project = _abc_project(tmp_path)
    project.compile()
    project.config.compiler_args = ["-Xlint:all"]
    result, compiler = project.compile()
    assert result.decision.kind == FULL_REBUILD
    assert "Recompiling all files because of changes in compiler options." in capsys.readouterr().out
    assert compiler.invocations[0].options[-1] == "-Xlint:all"


def test_changed_dependencies(tmp_path, capsys):
    project = _abc_project(tmp_path)
    dep = ResolvedDependency("org.example", "a", "1.0", "compile", "/lib/a.jar", module_name="org.a")
    project.compile(DependencyResolution([dep]))
    newer = ResolvedDependency("org.example", "a", "1.1", "compile", "/lib/a.jar", module_name="org.a")
    result, _ = project.compile(DependencyResolution([newer]))
    assert result.decision.kind == FULL_REBUILD
    assert "Recompiling all files because some dependencies changed." in capsys.readouterr().out


def test_incremental_compilation_disabled(tmp_path):
    project = _abc_project(tmp_path, incremental_compilation="none")
    project.compile()
    result, compiler = project.compile()
    assert result.decision.kind == FULL_REBUILD
    assert len(compiler.invocations[0].files) == 3


def test_compilation_failure(tmp_path):
    project = _abc_project(tmp_path)
    b = str(project.main / "org" / "app" / "B.java")
    compiler = StubCompiler().fail_on(0, [Diagnostic(ERROR, "cannot find symbol", b, 1, 30)])
    with pytest.raises(CompilationFailureException) as excinfo:
        project.compile(compiler=compiler)
    failure = excinfo.value
    args_file = str(tmp_path / "target" / "javac.args")
    assert failure.args_file == args_file
    assert os.path.exists(args_file)
    relative = os.path.join("src", "main", "java", "org", "app", "B.java")
    assert failure.messages == [f"cannot find symbol\n    at {relative}[1,30]"]
    assert f"Compiler arguments written to {args_file}" in failure.long_message

    # nothing was recorded as compiled, so the next build compiles everything again
    result, compiler = project.compile()
    assert result.success
    assert len(compiler.invocations[0].files) == 3


def test_compilation_failure_without_fail_on_error(tmp_path, capsys):
    project = _abc_project(tmp_path, fail_on_error=False)
    compiler = StubCompiler().fail_on(0, [Diagnostic(ERROR, "boom")])
    result, _ = project.compile(compiler=compiler)
    assert not result.success
    assert result.failure.messages == ["boom"]
    assert "WARNING: boom" in capsys.readouterr().err


def test_failure_without_error_message(tmp_path):
    project = _abc_project(tmp_path)
    compiler = StubCompiler()

    def failing(args, listener):
        return False

    compiler.compile = failing
    with pytest.raises(CompilationFailureException) as excinfo:
        project.compile(compiler=compiler)
    assert excinfo.value.messages == ["stub failed without reporting an error"]


def _multi_release_project(tmp_path):
    base = tmp_path / "src" / "main" / "java"
    java21 = tmp_path / "src" / "main" / "java21"
    directories = [
        SourceDirectory(str(base), MAIN, release=JavaRelease(17)),
        SourceDirectory(str(java21), MAIN, release=JavaRelease(21)),
    ]
    project = Project(tmp_path, directories)
    _write(base / "org" / "app" / "Platform.java", "package org.app;\npublic class Platform {}\n")
    _write(base / "org" / "app" / "App.java", "package org.app;\npublic class App { Platform p; }\n")
    _write(java21 / "org" / "app" / "Platform.java", "package org.app;\npublic class Platform { int threads; }\n")
    return project


def test_multi_release(tmp_path):
    project = _multi_release_project(tmp_path)
    result, compiler = project.compile()
    assert [u.release for u in result.compiled_units] == [JavaRelease(17), JavaRelease(21)]
    first, second = compiler.invocations
    assert first.value_of("--release") == "17"
    assert second.value_of("--release") == "21"
    versioned = str(project.out / "META-INF" / "versions" / "21")
    assert second.value_of("-d") == versioned
    assert second.value_of("--class-path").split(os.pathsep)[0] == str(project.out)
    assert os.path.exists(os.path.join(versioned, "org", "app", "Platform.class"))


def test_multi_release_failure_skips_higher_releases(tmp_path):
    project = _multi_release_project(tmp_path)
    compiler = StubCompiler().fail_on(0, [Diagnostic(ERROR, "broken")])
    with pytest.raises(CompilationFailureException):
        project.compile(compiler=compiler)
    assert len(compiler.invocations) == 1
    assert not (project.out / "META-INF").exists()


def test_test_compilation_against_main_classes(tmp_path):
    project = _abc_project(tmp_path)
    _write(project.test / "org" / "app" / "ATest.java", "package org.app;\nclass ATest { A a; }\n")
    junit = ResolvedDependency("org.junit", "junit", "5.0", "test", "/lib/junit.jar", module_name="org.junit")
    resolution = DependencyResolution([junit])
    project.compile(resolution)
    result, compiler = project.test_compile(resolution)
    assert result.decision.kind == FULL_REBUILD
    assert result.output_directory == str(project.test_out)
    invocation = compiler.invocations[0]
    assert invocation.value_of("-d") == str(project.test_out)
    assert invocation.value_of("--class-path") == os.pathsep.join([str(project.out), "/lib/junit.jar"])

    result, compiler = project.test_compile(resolution)
    assert result.decision.kind == NO_OP

    # recompiling the main classes invalidates the test classes
    _write(project.main / "org" / "app" / "C.java", "package org.app;\npublic class C { int c; }\n")
    project.compile(resolution)
    result, compiler = project.test_compile(resolution)
    assert result.decision.kind == FULL_REBUILD


def _modular_project(tmp_path):
    project = Project(tmp_path)
    _write(project.main / "module-info.java", "module org.app {\n  exports org.app;\n}\n")
    _write(project.main / "org" / "app" / "App.java", "package org.app;\npublic class App {}\n")
    _write(project.test / "org" / "app" / "AppTest.java", "package org.app;\nclass AppTest { App app; }\n")
    return project


def test_patched_module_tests(tmp_path):
    project = _modular_project(tmp_path)
    junit = ResolvedDependency("org.junit", "junit", "5.0", "test", "/lib/junit.jar", module_name="org.junit")
    resolution = DependencyResolution([junit])
    project.compile(resolution)
    result, compiler = project.test_compile(resolution)
    assert result.success
    invocation = compiler.invocations[0]
    assert invocation.value_of("--module-path") == os.pathsep.join([str(project.out), "/lib/junit.jar"])
    assert invocation.value_of("--patch-module") == f"org.app={project.test}"
    assert invocation.value_of("--add-modules") == "org.junit"
    assert invocation.value_of("--add-reads") == "org.app=org.junit"
    with open(project.test_out / MODULE_PATCH_ARGS) as fp:
        assert fp.read().splitlines() == ["--add-modules org.junit", "--add-reads org.app=org.junit"]


def test_modular_incremental_build_compiles_whole_module(tmp_path):
    project = _modular_project(tmp_path)
    _write(project.main / "org" / "app" / "Util.java", "package org.app;\npublic class Util {}\n")
    project.compile()
    _write(project.main / "org" / "app" / "Util.java", "package org.app;\npublic class Util { int u; }\n")
    result, compiler = project.compile()
    assert result.decision.kind == INCREMENTAL
    assert len(compiler.invocations[0].files) == 3


def test_test_module_info_overwrites_main_descriptor(tmp_path):
    project = _modular_project(tmp_path)
    test_module_info = _write(project.test / "module-info.java", "open module org.app {\n  requires org.junit;\n}\n")
    project.compile()
    main_descriptor = project.out / "module-info.class"
    checksum = _digest(main_descriptor)

    result, compiler = project.test_compile()
    assert result.success
    assert len(compiler.invocations) == 2
    descriptor_invocation, sources_invocation = compiler.invocations
    assert descriptor_invocation.files == [test_module_info]
    assert "--patch-module" not in descriptor_invocation.options
    assert sources_invocation.files == [str(project.test / "org" / "app" / "AppTest.java")]
    assert sources_invocation.value_of("--patch-module") == f"org.app={project.test}"
    assert not sources_invocation.value_of("--add-reads")

    assert _digest(main_descriptor) == checksum
    assert (project.test_out / "module-info.class").exists()
    assert os.path.exists(test_module_info)
    leftovers = [
        os.path.join(d, f) for root in (project.out, project.test_out, project.test) for d, _, fs in os.walk(root) for f in fs
        if f.endswith(".bak")
    ]
    assert leftovers == []


def test_test_module_info_failure_restores_main_descriptor(tmp_path):
    project = _modular_project(tmp_path)
    test_module_info = _write(project.test / "module-info.java", "open module org.app { }\n")
    project.compile()
    main_descriptor = project.out / "module-info.class"
    checksum = _digest(main_descriptor)
    compiler = StubCompiler().fail_on(1, [Diagnostic(ERROR, "cannot find symbol")])
    with pytest.raises(CompilationFailureException):
        project.test_compile(compiler=compiler)
    assert _digest(main_descriptor) == checksum
    assert os.path.exists(test_module_info)
    assert not os.path.exists(test_module_info + ".bak")
