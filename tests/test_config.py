from __future__ import annotations

import logging

import pytest

from term_metronome.config import (
    DEFAULT_BEATS,
    DEFAULT_TEMPO,
    MAX_BEATS,
    MAX_TEMPO,
    MIN_BEATS,
    MIN_TEMPO,
    HeldRecords,
    clamp,
    configure_logging,
    hold_console_logging,
    parse_args,
    resolve_device,
)


def test_defaults():
    config = parse_args([])
    assert config.tempo == DEFAULT_TEMPO
    assert config.beats == DEFAULT_BEATS
    assert not config.play
    assert config.accent
    assert config.color
    assert config.strong_sound is None


def test_short_and_long_flags():
    config = parse_args(["-t", "100", "--beats", "3", "-p", "--no-accent", "--no-color"])
    assert config.tempo == 100
    assert config.beats == 3
    assert config.play
    assert not config.accent
    assert not config.color


@pytest.mark.parametrize(
    "argv, tempo, beats",
    [
        (["--tempo", "300"], MAX_TEMPO, DEFAULT_BEATS),
        (["--tempo", "5"], MIN_TEMPO, DEFAULT_BEATS),
        (["-b", "0"], DEFAULT_TEMPO, MIN_BEATS),
        (["-b", "42"], DEFAULT_TEMPO, MAX_BEATS),
    ],
)
def test_out_of_range_values_are_clamped(argv, tempo, beats):
    config = parse_args(argv)
    assert config.tempo == tempo
    assert config.beats == beats


def test_non_integer_tempo_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["--tempo", "fast"])


def test_clamp():
    assert clamp(5, 1, 10) == 5
    assert clamp(-3, 1, 10) == 1
    assert clamp(11, 1, 10) == 10


def test_resolve_device():
    assert resolve_device(None) is None
    assert resolve_device("3") == 3
    assert resolve_device("USB Audio") == "USB Audio"


def test_configure_logging_to_file(tmp_path):
    log_file = tmp_path / "metronome.log"
    configure_logging(str(log_file), verbose=True)
    logging.getLogger("term_metronome.test").debug("hello")
    logging.shutdown()
    assert "hello" in log_file.read_text()
    configure_logging()


def test_console_records_held_until_screen_released(capsys):
    configure_logging()
    logger = logging.getLogger("term_metronome.test")
    with hold_console_logging():
        logger.warning("Output status: output underflow")
        logger.debug("not shown at warning level")
        assert capsys.readouterr().err == ""
    err = capsys.readouterr().err
    assert "Output status: output underflow" in err
    assert "not shown" not in err
    assert len(logging.getLogger().handlers) == 1


def test_held_records_keep_the_newest():
    held = HeldRecords(2)
    logger = logging.getLogger("term_metronome.test.held")
    for index in range(5):
        held.handle(logger.makeRecord(logger.name, logging.WARNING, __file__, 0, f"record {index}", (), None))
    assert [record.getMessage() for record in held.buffer] == ["record 3", "record 4"]


def test_file_logging_is_not_held(tmp_path):
    log_file = tmp_path / "metronome.log"
    configure_logging(str(log_file))
    with hold_console_logging():
        logging.getLogger("term_metronome.test").warning("written straight away")
        assert "written straight away" in log_file.read_text()
    logging.shutdown()
    configure_logging()
