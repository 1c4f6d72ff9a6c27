import os
import signal

import pytest

from jcompile._impl.build.tasks.compile import ModuleInfoSubstitution
from jcompile._impl.errors import ModuleInfoRestoreError
from jcompile._impl.sources import ModuleInfoOverwrite


class Layout:
    def __init__(self, root):
        self.test_source = root / "src" / "test" / "java" / "module-info.java"
        self.main_class = root / "target" / "classes" / "module-info.class"
        self.test_class = root / "target" / "test-classes" / "module-info.class"
        for path, content in [
            (self.test_source, b"open module org.app { }\n"),
            (self.main_class, b"main descriptor"),
            (self.test_class, b"test descriptor"),
        ]:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        overwrite = ModuleInfoOverwrite(str(self.test_source), "org.app", str(self.main_class.parent))
        self.substitution = ModuleInfoSubstitution(overwrite, str(self.test_class.parent))

    def assert_untouched(self):
        assert self.test_source.read_bytes() == b"open module org.app { }\n"
        assert self.main_class.read_bytes() == b"main descriptor"
        assert self.test_class.read_bytes() == b"test descriptor"
        for path in (self.test_source, self.main_class):
            assert not os.path.exists(str(path) + ".bak")


def test_swap_and_restore(tmp_path):
    layout = Layout(tmp_path)
    with layout.substitution as substitution:
        assert substitution.swap()
        assert layout.main_class.read_bytes() == b"test descriptor"
        assert not layout.test_source.exists()
        assert not layout.test_class.exists()
    layout.assert_untouched()


def test_failed_swap_leaves_the_descriptors_in_place(tmp_path, capsys):
    layout = Layout(tmp_path)
    os.remove(layout.test_class)
    with layout.substitution as substitution:
        assert not substitution.swap()
        assert layout.main_class.read_bytes() == b"main descriptor"
        assert layout.test_source.exists()
    assert layout.main_class.read_bytes() == b"main descriptor"
    assert layout.test_source.exists()
    assert not os.path.exists(str(layout.main_class) + ".bak")
    assert not os.path.exists(str(layout.test_source) + ".bak")
    assert "Cannot substitute" in capsys.readouterr().err


def test_restore_failure_is_fatal(tmp_path):
    layout = Layout(tmp_path)
    with pytest.raises(ModuleInfoRestoreError) as excinfo:
        with layout.substitution as substitution:
            assert substitution.swap()
            os.remove(str(layout.main_class) + ".bak")
    assert "module-info.class.bak" in str(excinfo.value)
    # the moves that could be undone are undone
    assert layout.test_source.read_bytes() == b"open module org.app { }\n"
    assert layout.test_class.read_bytes() == b"test descriptor"
    assert not layout.main_class.exists()


def test_leftovers_of_an_interrupted_build_are_restored(tmp_path, capsys):
    layout = Layout(tmp_path)
    os.replace(layout.test_source, str(layout.test_source) + ".bak")
    os.replace(layout.main_class, str(layout.main_class) + ".bak")
    layout.main_class.write_bytes(b"test descriptor")
    with layout.substitution:
        layout.assert_untouched()
    assert "left over by an interrupted build" in capsys.readouterr().err


def test_termination_restores_the_descriptors(tmp_path):
    layout = Layout(tmp_path)
    before = signal.getsignal(signal.SIGTERM)
    with pytest.raises(SystemExit):
        with layout.substitution as substitution:
            assert substitution.swap()
            handler = signal.getsignal(signal.SIGTERM)
            assert handler != before
            handler(signal.SIGTERM, None)
    layout.assert_untouched()
    assert signal.getsignal(signal.SIGTERM) == before
