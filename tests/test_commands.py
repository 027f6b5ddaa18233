import io

import pytest

from hogwarts_archive.archive import Archive
from hogwarts_archive.commands import HELP_TEXT, CommandDispatcher
from hogwarts_archive.ui_helpers import BlockWriter


def test_add_student_and_lookup(session):
    assert session.reply("ADD STUDENT Hermione Granger") == "Success."
    assert session.reply("STUDENT 100000") == "100000: Hermione Granger"
    assert session.reply("student 100001") == "No such student in system."


def test_student_queries_with_no_students(session):
    for line in ("STUDENT 100000", "STUDENT SPELLBOOKS 100000", "STUDENT HISTORY 100000", "RELINQUISH ALL 100000"):
        assert session.reply(line) == "No students in system."


def test_blocks_are_separated_by_one_blank_line(session):
    session.send("ADD STUDENT Harry Potter", "STUDENT 100000", "EXIT")
    assert session.output == "user: Success.\n\nuser: 100000: Harry Potter\n\nuser: Ending Archive process.\n"


def test_multi_line_block_tags_first_line_only(session, collection_file):
    session.send(f"ADD COLLECTION {collection_file}")
    assert session.reply("LIST TYPES") == "Charm\nCurse\nPotion"
    assert "\nuser: Charm\nCurse\nPotion\n" in session.output


def test_unknown_and_malformed_lines_are_silent(session):
    for line in ("", "   ", "HELLO", "STUDENT abc", "RENT 1", "RENT a b", "SPELLBOOK HISTORY x",
                 "ADD SPELLBOOK onlyfile", "RELINQUISH 1 2 3", "COMMON 100000", "ADD STUDENT"):
        assert session.reply(line) == ""
    assert session.output == ""


def test_commands_prints_help(session):
    assert session.reply("commands") == HELP_TEXT


def test_exit_stops_processing(archive):
    out = io.StringIO()
    dispatcher = CommandDispatcher(archive, BlockWriter(stream=out, tag="user: ", mode="plain"))
    dispatcher.run(io.StringIO("ADD STUDENT A\nexit\nADD STUDENT B\n"))
    assert out.getvalue() == "user: Success.\n\nuser: Ending Archive process.\n"
    assert list(archive.students) == [100000]


def test_run_until_end_of_input(archive):
    out = io.StringIO()
    dispatcher = CommandDispatcher(archive, BlockWriter(stream=out, tag="user: ", mode="plain"))
    dispatcher.run(io.StringIO("\n  ADD STUDENT A  \n\nADD STUDENT   B\n"))
    assert [s.name for s in archive.students.values()] == ["A", "B"]


def test_add_collection_messages(session, collection_file, tmp_path):
    assert session.reply(f"ADD COLLECTION {collection_file}") == "4 spellbooks successfully added."
    assert session.reply(f"ADD COLLECTION {collection_file}") == "No spellbooks have been added to the system."

    one = tmp_path / "one.csv"
    one.write_text("header\n10,Moste Potente Potions,Phineas Bourne,Potion\n", encoding="utf-8")
    assert session.reply(f"ADD COLLECTION {one}") == "1 spellbook successfully added."
    assert session.reply(f"ADD COLLECTION {tmp_path / 'missing.csv'}") == "No such collection."


def test_add_spellbook_messages(session, collection_file, tmp_path):
    assert session.reply(f"ADD SPELLBOOK {collection_file} 2") == "Successfully added: Basic Curses (Miranda Goshawk)."
    assert session.reply(f"ADD SPELLBOOK {collection_file} 2") == "Spellbook already exists in system."
    assert session.reply(f"ADD SPELLBOOK {collection_file} 77") == "No such spellbook in file."
    assert session.reply(f"ADD SPELLBOOK {tmp_path / 'missing.csv'} 1") == "No such file."


def test_save_collection(session, collection_file, tmp_path):
    target = tmp_path / "saved.csv"
    assert session.reply(f"SAVE COLLECTION {target}") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {collection_file}")
    assert session.reply(f"SAVE COLLECTION {target}") == "Success."
    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "serialNumber,title,inventor,type"
    assert lines[1:] == [
        "1,Basic Charms,Miranda Goshawk,Charm",
        "2,Basic Curses,Miranda Goshawk,Curse",
        "3,Advanced Potion-Making,Libatius Borage,Potion",
        "4,basic charms,miranda goshawk,charm",
    ]


def test_list_all_short_and_long(session, collection_file):
    assert session.reply("LIST ALL") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {collection_file}", "ADD STUDENT Harry", "RENT 100000 2")

    assert session.reply("LIST ALL") == (
        "Basic Charms (Miranda Goshawk)\n"
        "Basic Curses (Miranda Goshawk)\n"
        "Advanced Potion-Making (Libatius Borage)\n"
        "basic charms (miranda goshawk)"
    )
    long_text = session.reply("list all long")
    assert long_text.split("\n\n")[1] == "2: Basic Curses (Miranda Goshawk, Curse)\nRented by: 100000."
    assert long_text.count("\n\n") == 3


def test_list_available(session, collection_file):
    assert session.reply("LIST AVAILABLE") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {collection_file}", "ADD STUDENT Harry")
    for serial in (1, 2, 3):
        session.send(f"RENT 100000 {serial}")
    assert session.reply("LIST AVAILABLE LONG") == "4: basic charms (miranda goshawk, charm)\nCurrently available."
    session.send("RENT 100000 4")
    assert session.reply("LIST AVAILABLE") == "No spellbooks available."


def test_list_types_example(session, tmp_path):
    path = tmp_path / "two.csv"
    path.write_text(
        "serialNumber,title,inventor,type\n"
        "1,Basic Charms,Miranda Goshawk,Charm\n"
        "2,Basic Curses,Miranda Goshawk,Curse\n",
        encoding="utf-8",
    )
    assert session.reply("LIST TYPES") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {path}")
    assert session.reply("LIST TYPES") == "Charm\nCurse"
    assert session.reply("LIST INVENTORS") == "Miranda Goshawk"


def test_number_copies(session, collection_file):
    assert session.reply("NUMBER COPIES") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {collection_file}")
    assert session.reply("NUMBER COPIES") == (
        "Advanced Potion-Making (Libatius Borage): 1\n"
        "Basic Charms (Miranda Goshawk): 2\n"
        "Basic Curses (Miranda Goshawk): 1"
    )


def test_type_and_inventor_queries(session, collection_file):
    assert session.reply("TYPE Charm") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {collection_file}")
    assert session.reply("TYPE charm") == "Basic Charms (Miranda Goshawk)\nbasic charms (miranda goshawk)"
    assert session.reply("TYPE Jinx") == "No spellbooks with type Jinx."
    assert session.reply("INVENTOR gosh") == (
        "Basic Charms (Miranda Goshawk)\n"
        "basic charms (miranda goshawk)\n"
        "Basic Curses (Miranda Goshawk)"
    )
    assert session.reply("INVENTOR Snape") == "No spellbooks by Snape."


def test_spellbook_queries(session, collection_file):
    assert session.reply("SPELLBOOK 1") == "No spellbooks in system."
    assert session.reply("SPELLBOOK HISTORY 1") == "No such spellbook in system."
    session.send(f"ADD COLLECTION {collection_file}")
    assert session.reply("SPELLBOOK 3") == "Advanced Potion-Making (Libatius Borage)"
    assert session.reply("SPELLBOOK 3 long") == (
        "3: Advanced Potion-Making (Libatius Borage, Potion)\nCurrently available."
    )
    assert session.reply("SPELLBOOK 30") == "No such spellbook in system."
    assert session.reply("SPELLBOOK HISTORY 3") == "No rental history."


def test_rental_cycle(session, collection_file):
    session.send(f"ADD COLLECTION {collection_file}", "ADD STUDENT Harry", "ADD STUDENT Ron")
    assert session.reply("RENT 100000 1") == "Success."
    assert session.reply("RENT 100001 1") == "Spellbook is currently unavailable."
    assert session.reply("STUDENT SPELLBOOKS 100000") == "Basic Charms (Miranda Goshawk)"
    assert session.reply("STUDENT SPELLBOOKS 100001") == "Student not currently renting."
    assert session.reply("STUDENT HISTORY 100000") == "No rental history for student."

    assert session.reply("RELINQUISH 100000 2") == "Unable to return spellbook."
    assert session.reply("RELINQUISH 100001 1") == "Unable to return spellbook."
    assert session.reply("RELINQUISH 100000 1") == "Success."
    assert session.reply("SPELLBOOK HISTORY 1") == "100000"
    assert session.reply("STUDENT HISTORY 100000") == "Basic Charms (Miranda Goshawk)"

    session.send("RENT 100001 1", "RELINQUISH 100001 1")
    assert session.reply("SPELLBOOK HISTORY 1") == "100000\n100001"


def test_relinquish_all(session, collection_file):
    session.send(f"ADD COLLECTION {collection_file}", "ADD STUDENT Harry")
    assert session.reply("RELINQUISH ALL 100000") == "Success."
    session.send("RENT 100000 3", "RENT 100000 1")
    assert session.reply("STUDENT SPELLBOOKS 100000") == (
        "Basic Charms (Miranda Goshawk)\nAdvanced Potion-Making (Libatius Borage)"
    )
    assert session.reply("RELINQUISH ALL 100000") == "Success."
    assert session.reply("STUDENT HISTORY 100000") == (
        "Basic Charms (Miranda Goshawk)\nAdvanced Potion-Making (Libatius Borage)"
    )
    assert session.reply("RELINQUISH ALL 100009") == "No such student in system."


def _returned(session, student_id, *serials):
    for serial in serials:
        session.send(f"RENT {student_id} {serial}", f"RELINQUISH {student_id} {serial}")


def test_common(session, collection_file):
    assert session.reply("COMMON 100000 100001") == "No students in system."
    session.send("ADD STUDENT A", "ADD STUDENT B")
    assert session.reply("COMMON 100000 100001") == "No spellbooks in system."
    session.send(f"ADD COLLECTION {collection_file}")

    assert session.reply("COMMON 100000 100001") == "No common spellbooks."
    _returned(session, 100000, 1, 3)
    _returned(session, 100001, 4, 2)
    assert session.reply("COMMON 100000 100001") == "Basic Charms (Miranda Goshawk)"
    assert session.reply("COMMON 100001 100000") == "Basic Charms (Miranda Goshawk)"
    assert session.reply("COMMON 100000 100002") == "No such student in system."


def test_common_argument_errors(session):
    assert session.reply("COMMON 100000 100000") == "Duplicate students provided."
    assert session.reply("COMMON abc 100000 100000") == "Duplicate students provided."
    assert session.reply("COMMON 100000 abc") == "No such student in system."


@pytest.mark.parametrize("line", ["RENT 1 x", "RELINQUISH x 1", "RELINQUISH ALL x", "STUDENT SPELLBOOKS 1.0"])
def test_single_id_commands_drop_bad_numbers(session, line):
    session.send("ADD STUDENT A")
    assert session.reply(line) == ""


def test_default_archive_and_writer():
    dispatcher = CommandDispatcher()
    assert isinstance(dispatcher.archive, Archive)
    assert dispatcher.writer.mode in {"plain", "json", "rich"}


def test_collection_with_undecodable_bytes_still_loads(session, tmp_path):
    path = tmp_path / "latin1.csv"
    path.write_bytes(
        b"serialNumber,title,inventor,type\n"
        b"1,Basic Charms,Miranda Goshawk,Charm\n"
        b"2,Hogwarts: A History,Bathilda Bagsh\xe9t,History\n"
    )
    assert session.reply(f"ADD SPELLBOOK {path} 1") == "Successfully added: Basic Charms (Miranda Goshawk)."
    assert session.reply(f"ADD COLLECTION {path}") == "1 spellbook successfully added."
    assert session.reply("SPELLBOOK 2") == "Hogwarts: A History (Bathilda Bagsh�t)"
