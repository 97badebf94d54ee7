import io
import json

from fixtures import make_question

from quizbook.errorbook import cli as errors_cli
from quizbook.errorbook.storage import JsonFileStore
from quizbook.errorbook.store import ErrorBookStore


def _seed(workspace, clock, *collections):
    store = ErrorBookStore(JsonFileStore(workspace / "storage"), clock=clock)
    created = []
    for name, titles in collections:
        created.append(
            store.create_collection(
                name, [make_question(title, "B") for title in titles]
            )
        )
        clock.advance(1)
    return store, created


def _collections_on_disk(workspace):
    path = workspace / "storage" / "quiz_error_collections.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_list_empty_book(isolated_workspace, capsys):
    assert errors_cli.main(["list"]) == 1
    assert "empty" in capsys.readouterr().out


def test_list_and_show(isolated_workspace, clock, capsys):
    _, (first,) = _seed(isolated_workspace, clock, ("Week 1", ["Q1", "Q2"]))
    assert errors_cli.main(["list"]) == 0
    out = capsys.readouterr().out
    assert first.id in out
    assert "Week 1" in out
    assert "Total errors: 2" in out

    assert errors_cli.main(["show", first.id]) == 0
    assert "Q2" in capsys.readouterr().out
    assert errors_cli.main(["show", "missing"]) == 1


def test_rename_delete_and_merge(isolated_workspace, clock, capsys):
    _, (first, second) = _seed(
        isolated_workspace,
        clock,
        ("One", ["Q1", "Q2"]),
        ("Two", ["Q2", "Q3"]),
    )
    assert errors_cli.main(["rename", first.id, "Renamed"]) == 0
    assert errors_cli.main(["rename", first.id, "  "]) == 1

    merge_args = ["merge", first.id, second.id, "--name", "All"]
    assert errors_cli.main(merge_args) == 0
    on_disk = {
        item["name"]: item
        for item in _collections_on_disk(isolated_workspace)
    }
    assert len(on_disk["All"]["questions"]) == 3
    assert "Renamed" in on_disk

    assert errors_cli.main(["merge", first.id, "missing"]) == 1
    assert errors_cli.main(["delete", second.id]) == 0
    assert errors_cli.main(["delete", second.id]) == 1
    names = {item["name"] for item in _collections_on_disk(isolated_workspace)}
    assert names == {"Renamed", "All"}


def test_save_promotes_session_errors(isolated_workspace, clock, capsys):
    store, _ = _seed(isolated_workspace, clock)
    missed = make_question("Q1", "B")
    missed.user_answer = "A"
    store.record_miss(missed)

    assert errors_cli.main(["save"]) == 0
    assert "Saved 1 question(s)" in capsys.readouterr().out
    assert errors_cli.main(["save"]) == 1


def test_practice_graduates_correct_answers(
    isolated_workspace, clock, monkeypatch, capsys
):
    _, (collection,) = _seed(isolated_workspace, clock, ("Set", ["Q1", "Q2"]))
    monkeypatch.setattr("sys.stdin", io.StringIO("B\ns\nn\nA\ns\nq\n"))
    assert errors_cli.main(["practice", collection.id]) == 0

    stored = _collections_on_disk(isolated_workspace)
    remaining = [q["title"] for q in stored[0]["questions"]]
    assert remaining == ["Q2"]
    assert stored[0]["questions"][0]["userAnswer"] == "A"


def test_practice_unknown_collection(isolated_workspace, capsys):
    assert errors_cli.main(["practice", "missing"]) == 1
    assert "missing" in capsys.readouterr().err
