import pytest

from jcompile._impl.build.tasks.sequence import ReleaseSequence
from jcompile._impl.build.tasks.task import COMPLETED, FAILED, PENDING, Task
from jcompile._impl.errors import CompilationFailureException
from jcompile._impl.release import JavaRelease
from jcompile._impl.sources import SourcesForRelease


class RecordingTask(Task):
    def __init__(self, release, log, fail=False):
        super().__init__(SourcesForRelease(JavaRelease(release), [], [], "/out"))
        self.log = log
        self.fail = fail

    def execute(self):
        self.log.append((self.subject.release, [t.subject.release for t in self.deps]))
        if self.fail:
            raise CompilationFailureException(["broken"])
        self.state = COMPLETED


def test_tasks_run_in_release_order():
    log = []
    tasks = [RecordingTask(11, log), RecordingTask(17, log), RecordingTask(21, log)]
    sequence = ReleaseSequence(tasks)
    sequence.execute()
    assert log == [
        (JavaRelease(11), []),
        (JavaRelease(17), [JavaRelease(11)]),
        (JavaRelease(21), [JavaRelease(11), JavaRelease(17)]),
    ]
    assert sequence.state == COMPLETED
    assert sequence.completed_tasks == tasks


def test_failure_stops_the_sequence():
    log = []
    tasks = [RecordingTask(11, log), RecordingTask(17, log, fail=True), RecordingTask(21, log)]
    sequence = ReleaseSequence(tasks)
    with pytest.raises(CompilationFailureException):
        sequence.execute()
    assert [release for release, _ in log] == [JavaRelease(11), JavaRelease(17)]
    assert [t.state for t in tasks] == [COMPLETED, FAILED, PENDING]
    assert isinstance(tasks[1].failure, CompilationFailureException)
    assert sequence.completed_tasks == tasks[:1]


def test_tasks_must_be_sorted():
    with pytest.raises(AssertionError):
        ReleaseSequence([RecordingTask(17, []), RecordingTask(11, [])])
