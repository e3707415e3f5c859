#!/usr/bin/env python
"""
Wordle solver, using packed words and letter bitmasks.

Wordle is:

- https://www.nytimes.com/games/wordle/index.html

The solver proposes a guess, reads the per-letter feedback (from a known
solution, or from you, typing in what the online game told you), and sieves
its candidate list down until one word is left or it runs out of attempts.

Words are held as five 5-bit letter codes packed into a single integer, and
sets of letters as bitmasks, so that filtering a few thousand candidates per
round is cheap.

Run self-tests with:

.. code-block:: bash

    pip install pytest
    pytest wordle_sieve.py

Solve today's puzzle interactively:

.. code-block:: bash

    ./wordle_sieve.py solve

Test guess strategies:

.. code-block:: bash

    ./wordle_sieve.py test_performance --guesser RandomGuesser
    ./wordle_sieve.py test_performance --guesser UnknownLetterExplorer
    ./wordle_sieve.py test_performance --guesser PositionalExplorer

Feedback is typed as five characters: ``=`` for a letter in the right place,
``-`` for a letter that is present but in the wrong place, and ``_`` for a
letter that is absent (or for which there are no further occurrences).

"""  # noqa

# =============================================================================
# Imports
# =============================================================================

import argparse
from collections import Counter
from concurrent.futures import ProcessPoolExecutor
from contextlib import contextmanager
import csv
import datetime
from enum import Enum
from functools import total_ordering
import logging
from multiprocessing import cpu_count
import os
import random
import re
from statistics import median, mean
import tempfile
from timeit import default_timer as timer
from typing import (
    Any, Callable, Dict, Generator, Iterable, Iterator, List, NamedTuple,
    Optional, Protocol, Sequence, Set, Tuple, TypeVar, Union
)
import unittest

from colors import color  # pip install ansicolors
from cardinal_pythonlib.lists import chunks
from cardinal_pythonlib.logs import (
    configure_logger_for_colour,
    main_only_quicksetup_rootlogger,
)
from cardinal_pythonlib.maths_py import round_sf
import numpy as np

rootlog = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Constants
# =============================================================================

# Paths
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_OS_DICT = "/usr/share/dict/words"
DEFAULT_WORDLIST = os.path.join(THIS_DIR, "five_letter_words.txt")

# Defining the game
WORDLEN = 5
DEFAULT_MAX_ATTEMPTS = 6

# Packing
BITMASK_WIDTH = 64
BITS_PER_CHAR = 5
CHAR_MASK = (1 << BITS_PER_CHAR) - 1
BLANK = 0
BLANK_CHAR = " "
N_LETTERS = 26
_UPPER_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_CHAR_TO_CODE = {
    **{c: i + 1 for i, c in enumerate(_UPPER_LETTERS)},
    **{c.lower(): i + 1 for i, c in enumerate(_UPPER_LETTERS)},
    BLANK_CHAR: BLANK,
}  # type: Dict[str, int]

# Regular expressions to read from files or the user
WORD_REGEX = re.compile(rf"^[A-Z]{{{WORDLEN}}}$", re.IGNORECASE)
CHAR_ABSENT = "_"
CHAR_MISPLACED = "-"
CHAR_CORRECT = "="
_FEEDBACK_REGEX_STR = (
    rf"^[\{CHAR_ABSENT}"
    rf"\{CHAR_MISPLACED}"
    rf"\{CHAR_CORRECT}]{{{WORDLEN}}}$"
)
FEEDBACK_REGEX = re.compile(_FEEDBACK_REGEX_STR, re.IGNORECASE)
SOLVED_FEEDBACK = CHAR_CORRECT * WORDLEN

# Colours and styles for displaying guesses, via the ansicolors package
COLOUR_ABSENT = dict(fg="white", bg="black", style="bold")
COLOUR_MISPLACED = dict(fg="white", bg="yellow", style="bold")
COLOUR_CORRECT = dict(fg="white", bg="green", style="bold")

# Solve failures
FAILURE_NO_FEEDBACK = "no feedback"
FAILURE_NO_CANDIDATES = "no remaining candidates"
FAILURE_MAX_ATTEMPTS = "max attempts reached"

# Defaults
DEFAULT_NPROC = cpu_count()
DEFAULT_SIG_FIGURES = 3
DEFAULT_PERFORMANCE_SEED = 0


# =============================================================================
# Exceptions
# =============================================================================

class InvalidFormat(ValueError):
    """
    A word could not be parsed (wrong length or a character that is neither a
    letter nor a blank).
    """
    pass


class InvalidInput(ValueError):
    """
    Feedback could not be derived or read for a guess (e.g. a guess whose
    length does not match the solution).
    """
    pass


# =============================================================================
# Enums
# =============================================================================

class CharFeedback(Enum):
    """
    Possible types of feedback about each character.
    """
    CORRECT = 1
    MISPLACED = 2
    ABSENT = 3

    @property
    def plain_str(self) -> str:
        """
        Plain string representation.
        """
        if self == CharFeedback.CORRECT:
            return CHAR_CORRECT
        elif self == CharFeedback.MISPLACED:
            return CHAR_MISPLACED
        elif self == CharFeedback.ABSENT:
            return CHAR_ABSENT
        else:
            raise AssertionError("bug")


# Correct letters must be applied before misplaced ones, and misplaced before
# absent ones: a repeated letter marked absent means something different if
# another copy of it was marked misplaced in the same guess.
FEEDBACK_PROCESSING_ORDER = (
    CharFeedback.CORRECT,
    CharFeedback.MISPLACED,
    CharFeedback.ABSENT,
)


class SolveState(Enum):
    """
    Where a solve has got to.
    """
    IN_PROGRESS = 1
    SOLVED = 2
    FAILED = 3


# =============================================================================
# Helper functions
# =============================================================================

# -----------------------------------------------------------------------------
# Letter codes
# -----------------------------------------------------------------------------

def char_to_code(c: str) -> int:
    """
    Converts a character to its letter code: 0 for a blank, 1-26 for A-Z
    (either case).
    """
    try:
        return _CHAR_TO_CODE[c]
    except KeyError:
        raise InvalidFormat(f"Not a letter or blank: {c!r}")


def code_to_char(code: int) -> str:
    """
    Converts a letter code back to an uppercase character (or a space for a
    blank).
    """
    assert 0 <= code <= N_LETTERS, f"Bad letter code: {code}"
    if code == BLANK:
        return BLANK_CHAR
    return _UPPER_LETTERS[code - 1]


# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------

def colourful_char(x: str, feedback: CharFeedback) -> str:
    """
    Returns a string with ANSI codes to colour the character according to the
    feedback (and then reset afterwards).
    """
    if feedback == CharFeedback.ABSENT:
        colour_params = COLOUR_ABSENT
    elif feedback == CharFeedback.MISPLACED:
        colour_params = COLOUR_MISPLACED
    elif feedback == CharFeedback.CORRECT:
        colour_params = COLOUR_CORRECT
    else:
        raise AssertionError("bug")
    return color(x, **colour_params)


def colourful_feedback(word: Union["Word", str], feedback_str: str) -> str:
    """
    A word, coloured letter by letter as the online game would show it.
    """
    return "".join(
        colourful_char(c, f)
        for c, f in zip(str(word), feedback_from_str(feedback_str))
    )


def prettylist(words: Iterable[Any]) -> str:
    """
    Formats a wordlist.
    """
    return ", ".join(str(x) for x in words)


def quantity(n: int, singular: str, plural: str) -> str:
    """
    E.g. "1 possibility", "2,315 possibilities".
    """
    return f"{n:,} {singular if n == 1 else plural}"


def letters_str(mask: "BitMask") -> str:
    """
    The letters in a bitmask of letter codes, e.g. "AEST"; "?" if none.
    """
    return "".join(code_to_char(c) for c in mask) or "?"


# -----------------------------------------------------------------------------
# Feedback strings
# -----------------------------------------------------------------------------

def feedback_from_str(feedback_str: str) -> List[CharFeedback]:
    """
    Create coded feedback from a string.
    """
    if not FEEDBACK_REGEX.match(feedback_str):
        raise InvalidInput(f"Bad feedback string: {feedback_str!r}")
    feedback = []  # type: List[CharFeedback]
    for f_char in feedback_str:
        if f_char == CHAR_ABSENT:
            f = CharFeedback.ABSENT
        elif f_char == CHAR_MISPLACED:
            f = CharFeedback.MISPLACED
        elif f_char == CHAR_CORRECT:
            f = CharFeedback.CORRECT
        else:
            raise AssertionError("bug in feedback_from_str")
        feedback.append(f)
    return feedback


def feedback_str_from_coded(feedback: Sequence[CharFeedback]) -> str:
    """
    Our plain string format for coded feedback.
    """
    return "".join(f.plain_str for f in feedback)


# -----------------------------------------------------------------------------
# Reading word lists
# -----------------------------------------------------------------------------

def make_wordlist(from_filename: str,
                  to_filename: str) -> None:
    """
    Reads a dictionary file and creates a list of 5-letter words.
    """
    rootlog.info(f"Reading from {from_filename}")
    rootlog.info(f"Writing to {to_filename}")
    n_read = 0
    n_written = 0
    seen = set()  # type: Set[str]
    with open(from_filename, "rt") as f, open(to_filename, "wt") as t:
        for line in f:
            n_read += 1
            word = line.strip()
            if WORD_REGEX.match(word):
                uppercase_word = word.upper()
                if uppercase_word not in seen:
                    t.write(uppercase_word + "\n")
                    seen.add(uppercase_word)
                    n_written += 1
    rootlog.info(f"Read {n_read} words from {from_filename}")
    rootlog.info(f"Wrote {n_written} ({WORDLEN}-letter) words to {to_filename}")


def make_np_array_words(words: List[str]) -> np.ndarray:
    """
    Converts to an appropriate Numpy array type.
    """
    return np.array(words, dtype=f"U{WORDLEN}")


def read_words(wordlist_filename: str,
               max_n: int = None) -> np.ndarray:
    """
    Read all words from our pre-filtered wordlist.
    """
    words = []  # type: List[str]
    with open(wordlist_filename) as f:
        n_read = 0
        for line in f:
            word = line.strip().upper()
            if not word:
                continue
            words.append(word)
            n_read += 1
            if max_n is not None and n_read >= max_n:
                rootlog.warning(f"Reading only {n_read} words")
                break
    return make_np_array_words(sorted(words))


# -----------------------------------------------------------------------------
# Timing
# -----------------------------------------------------------------------------

@contextmanager
def time_section(name: str,
                 loglevel: int = logging.DEBUG) -> Generator[None, None, None]:
    start = timer()
    try:
        yield
    finally:
        end = timer()
        rootlog.log(loglevel, f"{name} took {end - start} s")


# -----------------------------------------------------------------------------
# Randomness
# -----------------------------------------------------------------------------

def get_seed(publication_date: datetime.date) -> int:
    """
    Seed for a day's puzzle, e.g. 20220209 for 9 Feb 2022, so that runs for
    the same day are reproducible.
    """
    return (
        publication_date.year * 10000
        + publication_date.month * 100
        + publication_date.day
    )


def random_element(items: Iterable[T], rng: random.Random) -> Optional[T]:
    """
    Chooses a random element from a sequence, using only a single pass of the
    sequence (reservoir sampling). Returns None for an empty sequence.
    """
    selection = None  # type: Optional[T]
    for i, item in enumerate(items, start=1):
        if rng.randrange(i) == 0:
            selection = item
    return selection


# =============================================================================
# Core types
# =============================================================================

# -----------------------------------------------------------------------------
# BitMask
# -----------------------------------------------------------------------------

def _check_bit_index(index: int) -> None:
    assert 0 <= index < BITMASK_WIDTH, f"Bit index out of range: {index}"


def _lowest_set_bit_index(x: int) -> int:
    return (x & -x).bit_length() - 1


class BitMask:
    """
    Immutable set of small non-negative integers (0 to BITMASK_WIDTH - 1),
    held as the bits of a single integer. We use it for sets of letter codes.

    Every operation returns a new mask; nothing is modified in place.
    """
    __slots__ = ("_value",)

    EMPTY = None  # type: BitMask  # set below

    def __init__(self, value: int = 0) -> None:
        assert 0 <= value < (1 << BITMASK_WIDTH), (
            f"BitMask value out of range: {value}"
        )
        self._value = value

    @classmethod
    def of(cls, indices: Iterable[int]) -> "BitMask":
        """
        Mask with the specified bits set.
        """
        value = 0
        for index in indices:
            _check_bit_index(index)
            value |= 1 << index
        return cls(value)

    @property
    def is_empty(self) -> bool:
        return self._value == 0

    def count(self) -> int:
        """
        Number of set bits.
        """
        return bin(self._value).count("1")

    def __len__(self) -> int:
        return self.count()

    def set(self, index: int) -> "BitMask":
        _check_bit_index(index)
        return BitMask(self._value | (1 << index))

    def clear(self, index: int) -> "BitMask":
        _check_bit_index(index)
        return BitMask(self._value & ~(1 << index))

    def is_set(self, index: int) -> bool:
        _check_bit_index(index)
        return bool(self._value & (1 << index))

    def __contains__(self, index: int) -> bool:
        return self.is_set(index)

    def count_where(self, criteria: Callable[[int], bool]) -> int:
        """
        Number of set indices for which ``criteria(index)`` is true, without
        building a list of them.
        """
        n = 0
        x = self._value
        while x:
            if criteria(_lowest_set_bit_index(x)):
                n += 1
            x &= x - 1  # reset lowest set bit
        return n

    def __iter__(self) -> Iterator[int]:
        """
        Set indices, in ascending order.
        """
        x = self._value
        while x:
            yield _lowest_set_bit_index(x)
            x &= x - 1

    def __or__(self, other: "BitMask") -> "BitMask":
        if not isinstance(other, BitMask):
            return NotImplemented
        return BitMask(self._value | other._value)

    def __and__(self, other: "BitMask") -> "BitMask":
        if not isinstance(other, BitMask):
            return NotImplemented
        return BitMask(self._value & other._value)

    def __sub__(self, other: "BitMask") -> "BitMask":
        if not isinstance(other, BitMask):
            return NotImplemented
        return BitMask(self._value & ~other._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitMask):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"BitMask({{{', '.join(str(i) for i in self)}}})"


BitMask.EMPTY = BitMask()


# -----------------------------------------------------------------------------
# Word
# -----------------------------------------------------------------------------

@total_ordering
class Word:
    """
    Immutable five-letter word, stored as five 5-bit letter codes packed into
    one integer (position 0 in the lowest bits). A code of 0 is a blank, so
    the same type also represents a partially known solution.

    Equality, hashing and ordering are by the packed value.
    """
    __slots__ = ("_bits",)

    EMPTY = None  # type: Word  # set below

    def __init__(self, bits: int = 0) -> None:
        assert 0 <= bits < (1 << (WORDLEN * BITS_PER_CHAR)), (
            f"Packed word out of range: {bits}"
        )
        self._bits = bits

    @classmethod
    def create(cls, text: str) -> "Word":
        """
        Parses a word. Spaces are blanks; letters may be in either case.

        Raises:
            InvalidFormat: wrong length, or a character that isn't a letter
                or a space
        """
        if len(text) != WORDLEN:
            raise InvalidFormat(
                f"Words must have exactly {WORDLEN} characters; got {text!r}"
            )
        bits = 0
        for c in reversed(text):
            bits = (bits << BITS_PER_CHAR) | char_to_code(c)
        return cls(bits)

    @property
    def bits(self) -> int:
        return self._bits

    def __getitem__(self, pos: int) -> int:
        assert 0 <= pos < WORDLEN, f"Bad position: {pos}"
        return (self._bits >> (pos * BITS_PER_CHAR)) & CHAR_MASK

    def __len__(self) -> int:
        return WORDLEN

    def __iter__(self) -> Iterator[int]:
        bits = self._bits
        for _ in range(WORDLEN):
            yield bits & CHAR_MASK
            bits >>= BITS_PER_CHAR

    def set_char_at_pos(self, code: int, pos: int) -> "Word":
        """
        Returns a new word with the letter at ``pos`` replaced.
        """
        assert 0 <= code <= N_LETTERS, f"Bad letter code: {code}"
        assert 0 <= pos < WORDLEN, f"Bad position: {pos}"
        shift = pos * BITS_PER_CHAR
        cleared = self._bits & ~(CHAR_MASK << shift)
        return Word(cleared | (code << shift))

    def contains(self, code: int) -> bool:
        return any(c == code for c in self)

    def contains_once(self, code: int) -> Tuple[bool, int]:
        """
        Does the letter occur in exactly one position?

        Returns:
            tuple: found_once, position (-1 unless found exactly once)
        """
        found_pos = -1
        for pos, c in enumerate(self):
            if c == code:
                if found_pos >= 0:
                    return False, -1
                found_pos = pos
        return found_pos >= 0, found_pos

    @property
    def unique_chars(self) -> BitMask:
        """
        The (non-blank) letter codes in this word.
        """
        return BitMask.of(c for c in self if c != BLANK)

    def unsolved_positions(self) -> List[int]:
        """
        Positions that are still blank.
        """
        return [pos for pos, c in enumerate(self) if c == BLANK]

    def __str__(self) -> str:
        return "".join(code_to_char(c) for c in self)

    def __repr__(self) -> str:
        return f"Word({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Word):
            return NotImplemented
        return self._bits == other._bits

    def __lt__(self, other: "Word") -> bool:
        if not isinstance(other, Word):
            return NotImplemented
        return self._bits < other._bits

    def __hash__(self) -> int:
        return hash(self._bits)


Word.EMPTY = Word()


# -----------------------------------------------------------------------------
# Knowledge
# -----------------------------------------------------------------------------

class Knowledge(NamedTuple):
    """
    What we know after the feedback so far. A fresh, immutable snapshot is
    made for each round and handed to the guesser.

    - letters_seen: letters we have guessed already
    - letters_excluded: letters known to be absent from the solution
    - forbidden_by_slot: per position, letters that can't go there
    - possible_by_slot: per position, letters that remaining candidates have
      there (and that aren't forbidden); empty if the position is solved or
      not yet worked out
    """
    letters_seen: BitMask
    letters_excluded: BitMask
    forbidden_by_slot: Tuple[BitMask, ...]
    possible_by_slot: Tuple[BitMask, ...]

    @classmethod
    def snapshot(cls,
                 letters_seen: BitMask,
                 letters_excluded: BitMask,
                 forbidden_by_slot: Sequence[BitMask],
                 possible_by_slot: Sequence[BitMask]) -> "Knowledge":
        """
        Copies the per-position masks, so the caller may go on changing its
        own lists.
        """
        assert len(forbidden_by_slot) == WORDLEN
        assert len(possible_by_slot) == WORDLEN
        return cls(letters_seen, letters_excluded,
                   tuple(forbidden_by_slot), tuple(possible_by_slot))

    @classmethod
    def initial(cls) -> "Knowledge":
        """
        Knowing nothing.
        """
        return cls.snapshot(
            letters_seen=BitMask.EMPTY,
            letters_excluded=BitMask.EMPTY,
            forbidden_by_slot=[BitMask.EMPTY] * WORDLEN,
            possible_by_slot=[BitMask.EMPTY] * WORDLEN,
        )

    def __str__(self) -> str:
        forbidden = "/".join(letters_str(m) for m in self.forbidden_by_slot)
        possible = "/".join(letters_str(m) for m in self.possible_by_slot)
        return (
            f"Seen {letters_str(self.letters_seen)}; "
            f"excluded {letters_str(self.letters_excluded)}; "
            f"forbidden by position {forbidden}; "
            f"possible by position {possible}."
        )


# =============================================================================
# Feedback
# =============================================================================

def _decrement_sieve(sieve: Dict[str, int], c: str) -> None:
    """
    Uses up one occurrence of a letter from the solution. Letters that are
    used up are removed, so "in the sieve" means "still available".
    """
    count = sieve[c]  # KeyError if missing: a bug, not a user error
    if count == 0:
        raise AssertionError("Did not expect to find keys with zero value "
                             "in sieve.")
    elif count == 1:
        del sieve[c]
    else:
        sieve[c] = count - 1


def derive_feedback(guess: Union[Word, str],
                    solution: Union[Word, str]) -> str:
    """
    Returns the feedback string the game would give for ``guess`` if the
    answer is ``solution``.

    Repeated letters need care. Each letter in the solution can account for
    only one letter in the guess, and exact matches claim theirs first. So if
    the solution is PAUSE, the guess LEPER gets ``_--__``: only the first E is
    "wrong place", and the second is absent. If the solution is HUMOR, HONOR
    gets ``=__==``: the first O is absent because the solution's only O is
    used by the exact match.

    Raises:
        InvalidInput: if the guess and solution have different lengths
    """
    guess = str(guess).upper()
    solution = str(solution).upper()
    if len(guess) != len(solution):
        raise InvalidInput(
            f"Invalid guess length; expected {len(solution)}, "
            f"got {len(guess)} ({guess!r})"
        )
    sieve = dict(Counter(solution))  # type: Dict[str, int]
    feedback = [None] * len(guess)  # type: List[Optional[CharFeedback]]
    # Exact matches first.
    for pos, (g_char, s_char) in enumerate(zip(guess, solution)):
        if g_char == s_char:
            feedback[pos] = CharFeedback.CORRECT
            _decrement_sieve(sieve, g_char)
    # Then the rest, in sequence.
    for pos, g_char in enumerate(guess):
        if feedback[pos] is not None:
            continue
        if g_char in sieve:
            feedback[pos] = CharFeedback.MISPLACED
            _decrement_sieve(sieve, g_char)
        else:
            feedback[pos] = CharFeedback.ABSENT
    return feedback_str_from_coded(feedback)


class FeedbackProvider(Protocol):
    """
    Anything that can tell us how good a guess was.
    """
    def get_feedback(self, guess: Word, n_remaining: int) -> Optional[str]:
        """
        Returns a feedback string such as ``"=_-__"``, or None if no feedback
        can be had (in which case the solve fails).
        """
        ...


class KnownSolutionFeedbackProvider:
    """
    Works out feedback from a solution we know. For automatic solving.
    """
    def __init__(self, solution: str) -> None:
        self.solution = str(Word.create(solution))

    def get_feedback(self, guess: Word, n_remaining: int) -> Optional[str]:
        return derive_feedback(guess, self.solution)


class InteractiveFeedbackProvider:
    """
    Asks the user what the online game said about our guess.
    """
    def __init__(self,
                 input_func: Callable[[str], str] = input) -> None:
        self.input_func = input_func

    def get_feedback(self, guess: Word, n_remaining: int) -> Optional[str]:
        prefix = "." * 58  # for presentational alignment
        while True:
            feedback_str = self.input_func(
                f"Enter the feedback for {guess} "
                f"({CHAR_ABSENT!r} absent, "
                f"{CHAR_MISPLACED!r} present but wrong location, "
                f"{CHAR_CORRECT!r} correct location; "
                f"blank line to give up): "
            ).strip().upper()
            if not feedback_str:
                return None
            if FEEDBACK_REGEX.match(feedback_str):
                print(f"{prefix} You have entered this clue: "
                      f"{colourful_feedback(guess, feedback_str)}")
                return feedback_str
            rootlog.warning(f"Feedback must be {WORDLEN} characters from "
                            f"{CHAR_CORRECT}{CHAR_MISPLACED}{CHAR_ABSENT}")


# =============================================================================
# Solving
# =============================================================================

# -----------------------------------------------------------------------------
# Results and reporting
# -----------------------------------------------------------------------------

class SolveResult:
    """
    The outcome of a solve.
    """
    def __init__(self,
                 state: SolveState,
                 guesses: Sequence[Word],
                 solution: Optional[Word] = None,
                 failure_reason: Optional[str] = None) -> None:
        self.state = state
        self.guesses = list(guesses)
        self.solution = solution
        self.failure_reason = failure_reason

    @classmethod
    def failed(cls, guesses: Sequence[Word], reason: str) -> "SolveResult":
        return cls(SolveState.FAILED, guesses, failure_reason=reason)

    @property
    def solved(self) -> bool:
        return self.state == SolveState.SOLVED

    @property
    def n_guesses(self) -> int:
        return len(self.guesses)

    def __str__(self) -> str:
        guesses = prettylist(self.guesses) or "?"
        if self.solved:
            return f"Word is: {self.solution}. Guesses: {guesses}"
        return f"Failed ({self.failure_reason}). Guesses: {guesses}"


class Reporter(Protocol):
    """
    Told about progress; plays no part in solving.
    """
    def report_guess(self, attempt_no: int, guess: Word,
                     n_remaining: int) -> None:
        ...

    def report_outcome(self, result: SolveResult) -> None:
        ...


class LogReporter:
    """
    Reports progress to a log.
    """
    def __init__(self, log: logging.Logger = None,
                 level: int = logging.INFO) -> None:
        self.log = log or rootlog
        self.level = level

    def report_guess(self, attempt_no: int, guess: Word,
                     n_remaining: int) -> None:
        possibilities = quantity(n_remaining, "possibility", "possibilities")
        self.log.log(
            self.level,
            f"Suggestion {color(f'({attempt_no})', fg='magenta')}: "
            f"{color(str(guess), fg='green')} - out of "
            f"{color(possibilities, fg='magenta')}"
        )

    def report_outcome(self, result: SolveResult) -> None:
        if result.solved:
            self.log.log(self.level, str(result))
        else:
            self.log.warning(str(result))


# -----------------------------------------------------------------------------
# Solver
# -----------------------------------------------------------------------------

def ordered_operations(feedback: Sequence[CharFeedback],
                       guess: Word) -> List[Tuple[CharFeedback, int, int]]:
    """
    (feedback, letter code, position) triples in the order we must apply
    them: all correct letters, then misplaced, then absent; left to right
    within each.
    """
    return [
        (f, guess[pos], pos)
        for f in FEEDBACK_PROCESSING_ORDER
        for pos in range(WORDLEN)
        if feedback[pos] == f
    ]


class Solver:
    """
    Solves puzzles by sieving a word list with feedback. Guess choice and
    feedback are supplied by collaborators.

    A solver may be reused; every call to :meth:`solve` starts from the full
    word list and keeps its own state.
    """
    def __init__(self,
                 guesser: "Guesser",
                 feedback_provider: FeedbackProvider,
                 words: Iterable[Union[str, Word]],
                 reporter: Reporter = None) -> None:
        """
        Args:
            guesser: chooses guesses
            feedback_provider: says how good each guess was
            words: the dictionary of possible solutions
            reporter: told about each guess (default: log it)
        """
        self.guesser = guesser
        self.feedback_provider = feedback_provider
        self.word_list = tuple(
            w if isinstance(w, Word) else Word.create(w)
            for w in words
        )  # type: Tuple[Word, ...]
        self.reporter = reporter or LogReporter()

    def solve_for_date(
            self,
            publication_date: datetime.date,
            max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> SolveResult:
        """
        Solve with randomness seeded from the puzzle's date.
        """
        rng = random.Random(get_seed(publication_date))
        return self.solve(rng, max_attempts)

    def solve(self,
              rng: random.Random,
              max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> SolveResult:
        """
        Solve a puzzle.

        Args:
            rng: source of randomness, passed to the guesser
            max_attempts: maximum number of guesses
        """
        result = self._solve(rng, max_attempts)
        self.reporter.report_outcome(result)
        return result

    def _solve(self, rng: random.Random, max_attempts: int) -> SolveResult:
        remaining = list(self.word_list)  # type: List[Word]
        solution = Word.EMPTY
        guesses = []  # type: List[Word]
        attempt_no = 0
        forbidden_by_slot = [BitMask.EMPTY] * WORDLEN  # type: List[BitMask]
        possible_by_slot = [BitMask.EMPTY] * WORDLEN  # type: List[BitMask]
        letters_excluded = BitMask.EMPTY
        letters_seen = BitMask.EMPTY

        if not remaining:
            return SolveResult.failed(guesses, FAILURE_NO_CANDIDATES)

        while attempt_no < max_attempts:
            attempts_remaining = max_attempts - attempt_no
            attempt_no += 1

            # Choose a guess
            if len(remaining) == 1:
                guess = remaining[0]
            else:
                knowledge = Knowledge.snapshot(
                    letters_seen=letters_seen,
                    letters_excluded=letters_excluded,
                    forbidden_by_slot=forbidden_by_slot,
                    possible_by_slot=possible_by_slot,
                )
                guess = self.guesser.guess(
                    rng, solution, tuple(remaining), knowledge,
                    attempt_no, attempts_remaining
                )
            guesses.append(guess)
            letters_seen = letters_seen | guess.unique_chars
            self.reporter.report_guess(attempt_no, guess, len(remaining))

            # Find out how it went
            feedback_str = self.feedback_provider.get_feedback(
                guess, len(remaining))
            if feedback_str is None:
                return SolveResult.failed(guesses, FAILURE_NO_FEEDBACK)
            feedback_str = feedback_str.upper()
            feedback = feedback_from_str(feedback_str)
            if feedback_str == SOLVED_FEEDBACK:
                return SolveResult(SolveState.SOLVED, guesses,
                                   solution=guess)

            # Sieve. Stop once the list has dropped below two words; a round
            # that starts with a single (wrong) word goes on until it's gone.
            stop_below = min(2, len(remaining))
            misplaced = BitMask.EMPTY
            for f, c, pos in ordered_operations(feedback, guess):
                if f == CharFeedback.CORRECT:
                    if solution[pos] == BLANK:
                        solution = solution.set_char_at_pos(c, pos)
                        remaining = [w for w in remaining if w[pos] == c]
                        possible_by_slot[pos] = BitMask.EMPTY

                elif f == CharFeedback.MISPLACED:
                    forbidden_by_slot[pos] = forbidden_by_slot[pos].set(c)
                    misplaced = misplaced.set(c)
                    remaining = [
                        w for w in remaining
                        if w[pos] != c and w.contains(c)
                    ]

                elif f == CharFeedback.ABSENT:
                    if misplaced.is_set(c):
                        # A surplus copy of a letter that is elsewhere in the
                        # word: it just isn't here.
                        # TODO: eliminate words lacking this letter at other
                        # positions, if a word list ever turns up a case the
                        # filters above miss.
                        remaining = [w for w in remaining if w[pos] != c]
                    else:
                        forbidden_by_slot[pos] = forbidden_by_slot[pos].set(c)
                        if not solution.contains(c):
                            letters_excluded = letters_excluded.set(c)
                        for slot in solution.unsolved_positions():
                            if not remaining:
                                break
                            remaining = [w for w in remaining if w[slot] != c]

                else:
                    raise AssertionError("bug")

                if len(remaining) < stop_below:
                    break  # solved, word missing from dictionary, or bad input

            n_remaining = len(remaining)
            if n_remaining == 0:
                rootlog.debug("No remaining words; check input")
                return SolveResult.failed(guesses, FAILURE_NO_CANDIDATES)
            elif n_remaining == 1:
                continue

            # Letters still possible at each unsolved position
            for slot in solution.unsolved_positions():
                present = BitMask.of(w[slot] for w in remaining)
                possible_by_slot[slot] = present - forbidden_by_slot[slot]

            solution = add_common_positional_chars(remaining, solution)

            rootlog.debug(
                f"After {guess} ({feedback_str}): "
                f"{quantity(n_remaining, 'word', 'words')} left; "
                f"partial solution {str(solution)!r}; "
                f"excluded {letters_str(letters_excluded)}"
            )

        return SolveResult.failed(guesses, FAILURE_MAX_ATTEMPTS)


def add_common_positional_chars(remaining: Sequence[Word],
                                solution: Word) -> Word:
    """
    Where every remaining word has the same letter at an unsolved position,
    that letter must be right; fill it in.

    The solver calls this after recomputing the possible letters for each
    unsolved position, so a position filled in here keeps a possible set
    holding just its letter (positions confirmed by feedback get an empty
    set instead).
    """
    first = remaining[0]
    for pos in solution.unsolved_positions():
        c = first[pos]
        if all(w[pos] == c for w in remaining):
            solution = solution.set_char_at_pos(c, pos)
    return solution


# =============================================================================
# Guessing
# =============================================================================

class Guesser(Protocol):
    """
    Chooses the next guess. Called only when more than one candidate remains,
    and should return one of the candidates.
    """
    def guess(self,
              rng: random.Random,
              partial_solution: Word,
              candidates: Sequence[Word],
              knowledge: Knowledge,
              attempt_no: int,
              attempts_remaining: int) -> Word:
        ...


def best_scoring_word(candidates: Iterable[Word],
                      scorer: Callable[[Word], Any],
                      rng: random.Random) -> Optional[Word]:
    """
    The candidate with the highest score; ties are broken at random.
    """
    best_score = None
    top_words = []  # type: List[Word]
    for word in candidates:
        score = scorer(word)
        if best_score is None or score > best_score:
            best_score = score
            top_words = [word]
        elif score == best_score:
            top_words.append(word)
    rootlog.debug(f"Best score {best_score} from "
                  f"{quantity(len(top_words), 'word', 'words')}")
    return random_element(top_words, rng)


class RandomGuesser:
    """
    Picks any candidate.
    """
    def guess(self,
              rng: random.Random,
              partial_solution: Word,
              candidates: Sequence[Word],
              knowledge: Knowledge,
              attempt_no: int,
              attempts_remaining: int) -> Word:
        return random_element(candidates, rng)


class UnknownLetterExplorer:
    """
    Scores candidates for the frequency of their letters among the candidates
    (counting a letter once per word), for letters we haven't guessed yet.
    Thus, explores unknown letters, preferring the most common. Tie-breaker:
    the number of new letters.
    """
    def guess(self,
              rng: random.Random,
              partial_solution: Word,
              candidates: Sequence[Word],
              knowledge: Knowledge,
              attempt_no: int,
              attempts_remaining: int) -> Word:
        letter_counts = Counter()  # type: Counter
        for word in candidates:
            letter_counts.update(word.unique_chars)
        seen = knowledge.letters_seen

        def unseen(c: int) -> bool:
            return not seen.is_set(c)

        def scorer(word: Word) -> Tuple[int, int]:
            chars = word.unique_chars
            return (
                sum(letter_counts[c] for c in chars if unseen(c)),
                chars.count_where(unseen),
            )

        return best_scoring_word(candidates, scorer, rng)


class PositionalExplorer:
    """
    Likes letters that are common amongst the candidates in positions we
    don't know yet, and that are still possible there.
    """
    def guess(self,
              rng: random.Random,
              partial_solution: Word,
              candidates: Sequence[Word],
              knowledge: Knowledge,
              attempt_no: int,
              attempts_remaining: int) -> Word:
        unsolved = partial_solution.unsolved_positions()
        counters = {
            pos: Counter(w[pos] for w in candidates)
            for pos in unsolved
        }  # type: Dict[int, Counter]

        def scorer(word: Word) -> int:
            # Don't score a single letter twice:
            countdict = {}  # type: Dict[int, int]
            for pos in unsolved:
                c = word[pos]
                possible = knowledge.possible_by_slot[pos]
                if not possible.is_empty and not possible.is_set(c):
                    continue
                countdict[c] = max(countdict.get(c, 0), counters[pos][c])
            return sum(countdict.values())

        return best_scoring_word(candidates, scorer, rng)


GUESSERS = {
    "RandomGuesser": RandomGuesser,
    "UnknownLetterExplorer": UnknownLetterExplorer,
    "PositionalExplorer": PositionalExplorer,
}  # type: Dict[str, Callable[[], Guesser]]

DEFAULT_GUESSER = "UnknownLetterExplorer"


# =============================================================================
# Interactive solver
# =============================================================================

def solve_interactive(
        wordlist_filename: str,
        publication_date: datetime.date = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        guesser_name: str = DEFAULT_GUESSER) -> SolveResult:
    """
    Suggest guesses and ask the user for the game's feedback.
    """
    publication_date = publication_date or datetime.date.today()
    rootlog.info(f"Wordle solver, for the puzzle of {publication_date}.")
    solver = Solver(
        guesser=GUESSERS[guesser_name](),
        feedback_provider=InteractiveFeedbackProvider(),
        words=read_words(wordlist_filename),
    )
    return solver.solve_for_date(publication_date, max_attempts)


# =============================================================================
# Autosolver and performance testing framework to compare guessers
# =============================================================================

def autosolve(target: str,
              all_words: Iterable[Union[str, Word]],
              guesser_name: str = DEFAULT_GUESSER,
              seed: int = DEFAULT_PERFORMANCE_SEED,
              max_attempts: int = DEFAULT_MAX_ATTEMPTS,
              log: logging.Logger = None,
              loglevel: int = logging.INFO) -> SolveResult:
    """
    Automatically solves for a known target word.
    """
    log = log or rootlog
    log.debug(f"... for word {target}, seed={seed}...")
    solver = Solver(
        guesser=GUESSERS[guesser_name](),
        feedback_provider=KnownSolutionFeedbackProvider(target),
        words=all_words,
        reporter=LogReporter(log, level=loglevel),
    )
    return solver.solve(random.Random(seed), max_attempts)


def autosolve_single_arg(
        args: Tuple[str, np.ndarray, str, int, int]) -> Tuple[int, bool]:
    """
    Version of :func:`autosolve` that takes a single argument, which is
    necessary for some of the parallel processing map functions.

    The argument is a tuple: target, all_words, guesser_name, seed,
    max_attempts.

    Returns a tuple: n_guesses, solved.
    """
    target, all_words, guesser_name, seed, max_attempts = args
    result = autosolve(target, all_words, guesser_name, seed, max_attempts,
                       loglevel=logging.DEBUG)
    return result.n_guesses, result.solved


def autosolve_batch(targets: List[str],
                    all_words: np.ndarray,
                    guesser_name: str,
                    seed: int,
                    max_attempts: int,
                    loglevel: int = logging.INFO) \
        -> List[Tuple[str, int, bool]]:
    """
    Solves a batch of targets; used as a Ray task. The word list is parsed
    once for the whole batch.
    """
    batchlog = logging.getLogger(__name__)
    configure_logger_for_colour(batchlog, level=loglevel)
    words = [Word.create(w) for w in all_words]
    results = []  # type: List[Tuple[str, int, bool]]
    for target in targets:
        with time_section("Word"):
            result = autosolve(target, words, guesser_name, seed,
                               max_attempts, log=batchlog,
                               loglevel=logging.DEBUG)
        results.append((target, result.n_guesses, result.solved))
    return results


def _measure_with_ray(test_words: List[str],
                      all_words: np.ndarray,
                      guesser_name: str,
                      seed: int,
                      max_attempts: int,
                      nproc: int,
                      chunks_per_worker: int,
                      loglevel: int) \
        -> Generator[Tuple[str, int, bool], None, None]:
    import ray  # pip install wordle-sieve[parallel]

    rootlog.info("Starting Ray")
    ray.init(num_cpus=nproc)
    autosolve_ray = ray.remote(autosolve_batch)
    words_per_chunk = max(1, len(test_words) // (nproc * chunks_per_worker))
    pending_jobs = [
        autosolve_ray.remote(targets, all_words, guesser_name, seed,
                             max_attempts, loglevel=loglevel)
        for targets in chunks(test_words, words_per_chunk)
    ]
    rootlog.info(f"Submitted {len(pending_jobs)} jobs, aiming for "
                 f"{words_per_chunk} words per job")
    while len(pending_jobs):
        rootlog.debug(f"Waiting for a job to complete "
                      f"({len(pending_jobs)} running)...")
        done_jobs, pending_jobs = ray.wait(pending_jobs)
        for done_job in done_jobs:
            results = ray.get(done_job)
            rootlog.debug(f"Retrieved {len(results)} results")
            yield from results


def _measure_with_processes(test_words: List[str],
                            all_words: np.ndarray,
                            guesser_name: str,
                            seed: int,
                            max_attempts: int,
                            nproc: int,
                            chunks_per_worker: int) \
        -> Generator[Tuple[str, int, bool], None, None]:
    arglist = (
        (target, all_words, guesser_name, seed, max_attempts)
        for target in test_words
    )
    n_words = len(test_words)
    n_chunks = nproc * chunks_per_worker
    chunksize = max(1, n_words // n_chunks)
    rootlog.debug(
        f"Aiming for {chunks_per_worker} chunks/worker with {nproc} "
        f"workers and thus {n_chunks} chunks: for {n_words} words, "
        f"chunksize = {chunksize} words/chunk"
    )
    with ProcessPoolExecutor(nproc) as executor:
        for word, (n_guesses, solved) in zip(
                test_words,
                executor.map(autosolve_single_arg, arglist,
                             chunksize=chunksize)):
            yield word, n_guesses, solved


def measure_guesser_performance(
        wordlist_filename: str,
        output_filename: str,
        nwords: int = None,
        nproc: int = DEFAULT_NPROC,
        guesser_name: str = DEFAULT_GUESSER,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        seed: int = DEFAULT_PERFORMANCE_SEED,
        chunks_per_worker: int = 5,
        loglevel: int = logging.INFO,
        use_ray: bool = True) -> None:
    """
    Solve for every word in the list (or the first ``nwords``) with a guesser
    and report its performance statistics. Each puzzle is solved
    independently, with its own random number generator seeded from ``seed``.
    """
    all_words = read_words(wordlist_filename)
    test_words = list(read_words(wordlist_filename, max_n=nwords))
    guess_counts = []  # type: List[int]
    n_solved = 0
    with open(output_filename, "wt") as f, time_section("Performance test",
                                                         logging.INFO):
        writer = csv.writer(f)
        writer.writerow(["guesser", "word", "n_guesses", "solved"])
        if use_ray:
            results = _measure_with_ray(
                test_words, all_words, guesser_name, seed, max_attempts,
                nproc, chunks_per_worker, loglevel
            )
        else:
            results = _measure_with_processes(
                test_words, all_words, guesser_name, seed, max_attempts,
                nproc, chunks_per_worker
            )
        for word, n_guesses, solved in results:
            writer.writerow([guesser_name, word, n_guesses, int(solved)])
            f.flush()  # nice to be able to follow the output live
            guess_counts.append(n_guesses)
            n_solved += int(solved)

    n_tests = len(guess_counts)
    assert n_tests > 0, "No words!"
    tested = (
        f"all {n_tests} known" if nwords is None
        else f"the first {n_tests}"
    )
    rootlog.info(
        f"Across {tested} words, guesser {guesser_name} took: "
        f"min {min(guess_counts)}, "
        f"median {median(guess_counts)}, "
        f"mean {round_sf(mean(guess_counts), DEFAULT_SIG_FIGURES)}, "
        f"max {max(guess_counts)} guesses; "
        f"solved {round_sf(100 * n_solved / n_tests, DEFAULT_SIG_FIGURES)}% "
        f"within {max_attempts}"
    )


# =============================================================================
# Self-testing
# =============================================================================

def _code(c: str) -> int:
    return char_to_code(c)


class ScriptedGuesser:
    """
    Test guesser: returns set words in turn, and records what it was told.
    """
    def __init__(self, words: Sequence[str]) -> None:
        self.words = [Word.create(w) for w in words]
        self.calls = []  # type: List[Tuple[Word, Tuple[Word, ...], Knowledge, int, int]]  # noqa

    def guess(self, rng, partial_solution, candidates, knowledge, attempt_no,
              attempts_remaining) -> Word:
        self.calls.append((partial_solution, tuple(candidates), knowledge,
                           attempt_no, attempts_remaining))
        return self.words[len(self.calls) - 1]


class RecordingGuesser(RandomGuesser):
    def __init__(self) -> None:
        self.partial_solutions = []  # type: List[Word]

    def guess(self, rng, partial_solution, candidates, knowledge, attempt_no,
              attempts_remaining) -> Word:
        self.partial_solutions.append(partial_solution)
        return super().guess(rng, partial_solution, candidates, knowledge,
                             attempt_no, attempts_remaining)


class RecordingReporter:
    def __init__(self) -> None:
        self.guesses = []  # type: List[Tuple[int, Word, int]]
        self.outcomes = []  # type: List[SolveResult]

    def report_guess(self, attempt_no: int, guess: Word,
                     n_remaining: int) -> None:
        self.guesses.append((attempt_no, guess, n_remaining))

    def report_outcome(self, result: SolveResult) -> None:
        self.outcomes.append(result)


class NoFeedbackProvider:
    def get_feedback(self, guess: Word, n_remaining: int) -> Optional[str]:
        return None


class ScriptedFeedbackProvider:
    """
    Test feedback source: returns set feedback strings in turn, whatever the
    guess.
    """
    def __init__(self, feedback_strs: Sequence[str]) -> None:
        self.feedback_strs = list(feedback_strs)

    def get_feedback(self, guess: Word, n_remaining: int) -> Optional[str]:
        return self.feedback_strs.pop(0)


TEST_WORDS = [
    "APPLE", "APPLY", "CRANE", "CRATE", "TRACE", "BRACE", "GRACE", "PLACE",
    "SLATE", "STALE", "STEAL", "LEAST", "HOUSE", "MOUSE", "ERROR", "TERRA",
    "BILLS", "FILLS", "HILLS", "KILLS", "MILLS", "PILLS",
]


class TestBitMask(unittest.TestCase):
    def test_empty(self) -> None:
        m = BitMask.EMPTY
        assert m.is_empty
        assert m.count() == 0
        assert list(m) == []

    def test_set_clear(self) -> None:
        m = BitMask.EMPTY.set(3).set(0).set(63)
        assert list(m) == [0, 3, 63]
        assert list(m) == [0, 3, 63]  # restartable
        assert m.count() == 3
        assert len(m) == 3
        assert m.is_set(63)
        assert not m.is_set(1)
        assert 3 in m
        m2 = m.clear(3)
        assert list(m2) == [0, 63]
        assert list(m) == [0, 3, 63], "set/clear must not alter the original"
        assert m.set(3) == m

    def test_count_where(self) -> None:
        m = BitMask.of([1, 2, 3, 4, 10])
        assert m.count_where(lambda i: i % 2 == 0) == 3
        assert m.count_where(lambda i: i > 100) == 0

    def test_set_algebra(self) -> None:
        a = BitMask.of([1, 2, 3])
        b = BitMask.of([3, 4])
        assert list(a | b) == [1, 2, 3, 4]
        assert list(a & b) == [3]
        assert list(a - b) == [1, 2]

    def test_out_of_range(self) -> None:
        with self.assertRaises(AssertionError):
            BitMask.EMPTY.set(BITMASK_WIDTH)
        with self.assertRaises(AssertionError):
            BitMask.EMPTY.is_set(-1)


class TestWord(unittest.TestCase):
    def test_create(self) -> None:
        w = Word.create("crane")
        assert str(w) == "CRANE"
        assert len(w) == WORDLEN
        assert w[0] == _code("C")
        assert Word.create("abcdz")[0] == 1
        assert Word.create("abcdz")[4] == 26
        assert list(Word.create("abcde")) == [1, 2, 3, 4, 5]
        partial = Word.create("CR NE")
        assert str(partial) == "CR NE"
        assert partial[2] == BLANK

    def test_invalid_format(self) -> None:
        for bad in ("loll", "toolong", "ab1de", ""):
            with self.assertRaises(InvalidFormat):
                Word.create(bad)

    def test_set_char_at_pos(self) -> None:
        w = Word.create("     ")
        assert w == Word.EMPTY
        w2 = w.set_char_at_pos(_code("Q"), 4)
        assert str(w2) == "    Q"
        assert str(w) == "     "
        w3 = Word.create("apple").set_char_at_pos(_code("Y"), 4)
        assert w3 == Word.create("apply")

    def test_contains(self) -> None:
        w = Word.create("apple")
        assert w.contains(_code("A"))
        assert not w.contains(_code("Z"))
        assert w.contains_once(_code("P")) == (False, -1)
        assert w.contains_once(_code("L")) == (True, 3)
        assert w.contains_once(_code("Z")) == (False, -1)

    def test_equality(self) -> None:
        assert Word.create("apple") == Word.create("APPLE")
        assert Word.create("apple") != Word.create("apply")
        assert len({Word.create("apple"), Word.create("APPLE")}) == 1
        words = sorted([Word.create("crane"), Word.create("apple")])
        assert words[0].bits < words[1].bits

    def test_unique_chars(self) -> None:
        assert list(Word.create("apple").unique_chars) == [1, 5, 12, 16]
        assert Word.EMPTY.unique_chars.is_empty

    def test_unsolved_positions(self) -> None:
        assert Word.create("a p  ").unsolved_positions() == [1, 3, 4]
        assert Word.EMPTY.unsolved_positions() == list(range(WORDLEN))
        assert Word.create("apple").unsolved_positions() == []


class TestFeedback(unittest.TestCase):
    def test_solved(self) -> None:
        assert derive_feedback("crane", "crane") == SOLVED_FEEDBACK
        assert derive_feedback("crane", "crane") == "====="

    def test_simple(self) -> None:
        assert derive_feedback("apply", "apple") == "====_"
        assert derive_feedback(Word.create("apply"),
                               Word.create("apple")) == "====_"
        assert derive_feedback("ratio", "slate") == "_--__"

    def test_duplicate_letters(self) -> None:
        # Repeated letters in guess and solution
        assert derive_feedback("rorer", "error") == "--=-="
        assert derive_feedback("error", "terra") == "--=__"
        # First O absent, not misplaced: the only O is matched exactly
        assert derive_feedback("honor", "humor") == "=__=="
        # Three Es, one in the right place
        assert derive_feedback("eerie", "pause") == "____="
        # Two Es, both in the wrong place; only the first is flagged
        assert derive_feedback("leper", "pause") == "_--__"
        assert derive_feedback("genie", "teeth") == "_=__-"
        assert derive_feedback("epees", "teeth") == "-_=__"

    def test_letter_budget(self) -> None:
        pairs = [
            ("rorer", "error"), ("eerie", "pause"), ("epees", "teeth"),
            ("llama", "lolly"), ("sassy", "asses"), ("apple", "paper"),
        ]
        for guess, solution in pairs:
            feedback = derive_feedback(guess, solution)
            assert derive_feedback(guess, solution) == feedback
            marked = Counter(
                g for g, f in zip(guess.upper(), feedback)
                if f in (CHAR_CORRECT, CHAR_MISPLACED)
            )
            occurs = Counter(solution.upper())
            for letter, n in marked.items():
                assert n <= occurs[letter], (
                    f"{guess}/{solution}: {letter} marked {n} times "
                    f"but occurs {occurs[letter]} times"
                )

    def test_invalid_input(self) -> None:
        with self.assertRaises(InvalidInput):
            derive_feedback("loll", "allow")
        with self.assertRaises(InvalidFormat):
            Word.create("loll")

    def test_feedback_strings(self) -> None:
        coded = feedback_from_str("=-_==")
        assert coded == [
            CharFeedback.CORRECT, CharFeedback.MISPLACED, CharFeedback.ABSENT,
            CharFeedback.CORRECT, CharFeedback.CORRECT,
        ]
        assert feedback_str_from_coded(coded) == "=-_=="
        with self.assertRaises(InvalidInput):
            feedback_from_str("=-_")
        with self.assertRaises(InvalidInput):
            feedback_from_str("cmnnc")

    def test_known_solution_provider(self) -> None:
        provider = KnownSolutionFeedbackProvider("apple")
        assert provider.get_feedback(Word.create("apply"), 10) == "====_"

    def test_interactive_provider(self) -> None:
        answers = iter(["nonsense", "  =-_== ", ""])
        provider = InteractiveFeedbackProvider(
            input_func=lambda prompt: next(answers))
        assert provider.get_feedback(Word.create("crane"), 5) == "=-_=="
        assert provider.get_feedback(Word.create("crane"), 5) is None


class TestSolver(unittest.TestCase):
    def test_single_candidate_guessed_without_guesser(self) -> None:
        guesser = ScriptedGuesser(["crane"])
        reporter = RecordingReporter()
        solver = Solver(guesser, KnownSolutionFeedbackProvider("apple"),
                        ["apple", "apply", "crane"], reporter=reporter)
        result = solver.solve(random.Random(1))
        assert result.state == SolveState.SOLVED
        assert result.solution == Word.create("apple")
        assert result.guesses == [Word.create("crane"), Word.create("apple")]
        assert len(guesser.calls) == 1
        assert reporter.outcomes == [result]
        assert [n for _, _, n in reporter.guesses] == [3, 1]

    def test_max_attempts(self) -> None:
        guesser = ScriptedGuesser(["bills", "fills"])
        solver = Solver(guesser, KnownSolutionFeedbackProvider("pills"),
                        ["bills", "fills", "hills", "kills", "mills",
                         "pills"],
                        reporter=RecordingReporter())
        result = solver.solve(random.Random(1), max_attempts=2)
        assert result.state == SolveState.FAILED
        assert result.failure_reason == FAILURE_MAX_ATTEMPTS
        assert result.solution is None
        assert result.guesses == [Word.create("bills"), Word.create("fills")]

        # What the guesser was told on the second attempt
        partial, candidates, knowledge, attempt_no, attempts_remaining = (
            guesser.calls[1]
        )
        assert attempt_no == 2
        assert attempts_remaining == 1
        assert str(partial) == " ILLS"
        assert len(candidates) == 5
        assert Word.create("bills") not in candidates
        assert knowledge.letters_excluded == BitMask.of([_code("B")])
        assert knowledge.forbidden_by_slot[0] == BitMask.of([_code("B")])
        assert knowledge.possible_by_slot[0] == BitMask.of(
            _code(c) for c in "FHKMP")
        assert knowledge.letters_seen == BitMask.of(
            _code(c) for c in "BILS")

        first_knowledge = guesser.calls[0][2]
        assert first_knowledge.letters_seen.is_empty
        assert guesser.calls[0][3:] == (1, 2)

    def test_no_feedback(self) -> None:
        solver = Solver(RandomGuesser(), NoFeedbackProvider(), TEST_WORDS,
                        reporter=RecordingReporter())
        result = solver.solve(random.Random(1))
        assert result.state == SolveState.FAILED
        assert result.failure_reason == FAILURE_NO_FEEDBACK
        assert result.n_guesses == 1

    def test_no_remaining_candidates(self) -> None:
        guesser = ScriptedGuesser(["bills"])
        solver = Solver(guesser, KnownSolutionFeedbackProvider("pills"),
                        ["bills", "fills"], reporter=RecordingReporter())
        result = solver.solve(random.Random(1))
        assert result.state == SolveState.FAILED
        assert result.failure_reason == FAILURE_NO_CANDIDATES
        assert result.guesses == [Word.create("bills"), Word.create("fills")]

        empty = Solver(guesser, KnownSolutionFeedbackProvider("pills"), [],
                       reporter=RecordingReporter())
        result = empty.solve(random.Random(1))
        assert result.failure_reason == FAILURE_NO_CANDIDATES
        assert result.guesses == []

    def test_wrong_sole_candidate_eliminated(self) -> None:
        # Only one word from the start, and it's wrong: the round that
        # guesses it must remove it rather than guess it again.
        guesser = ScriptedGuesser([])
        solver = Solver(guesser, KnownSolutionFeedbackProvider("pills"),
                        ["fills"], reporter=RecordingReporter())
        result = solver.solve(random.Random(1))
        assert result.state == SolveState.FAILED
        assert result.failure_reason == FAILURE_NO_CANDIDATES
        assert result.guesses == [Word.create("fills")]
        assert guesser.calls == []

    def test_stops_sieving_below_two_candidates(self) -> None:
        # "=____" for CRANE leaves only CRANE after the C. Going on to the
        # absent R would eliminate CRANE too; we stop first.
        guesser = ScriptedGuesser(["crane"])
        feedback = ScriptedFeedbackProvider(["=____", SOLVED_FEEDBACK])
        solver = Solver(guesser, feedback, ["apple", "crane", "slate"],
                        reporter=RecordingReporter())
        result = solver.solve(random.Random(1))
        assert result.state == SolveState.SOLVED
        assert result.guesses == [Word.create("crane"), Word.create("crane")]
        assert len(guesser.calls) == 1

    def test_absent_letter_confirmed_elsewhere(self) -> None:
        # SILLS against PILLS: the final S is correct, so the first S is
        # absent from position 0 only, not from the word.
        assert derive_feedback("sills", "pills") == "_===="
        guesser = ScriptedGuesser(["sills", "bills"])
        solver = Solver(guesser, KnownSolutionFeedbackProvider("pills"),
                        ["sills", "bills", "pills", "fills"],
                        reporter=RecordingReporter())
        solver.solve(random.Random(1), max_attempts=2)
        partial, candidates, knowledge, _, _ = guesser.calls[1]
        assert str(partial) == " ILLS"
        assert Word.create("sills") not in candidates
        assert len(candidates) == 3
        assert not knowledge.letters_excluded.is_set(_code("S"))
        assert knowledge.letters_excluded.is_empty
        assert knowledge.forbidden_by_slot[0] == BitMask.of([_code("S")])

    def test_promoted_position_keeps_its_letter(self) -> None:
        # BRAVE against CRANE leaves CRANE and CRATE, which share the C.
        guesser = ScriptedGuesser(["brave", "crate"])
        solver = Solver(guesser, KnownSolutionFeedbackProvider("crane"),
                        ["brave", "crane", "crate"],
                        reporter=RecordingReporter())
        solver.solve(random.Random(1), max_attempts=2)
        partial, candidates, knowledge, _, _ = guesser.calls[1]
        assert str(partial) == "CRA E"
        assert len(candidates) == 2
        assert knowledge.possible_by_slot[0] == BitMask.of([_code("C")])
        assert knowledge.possible_by_slot[1].is_empty  # confirmed by feedback
        assert knowledge.possible_by_slot[3] == BitMask.of(
            [_code("N"), _code("T")])

    def test_knowledge_is_immutable(self) -> None:
        knowledge = Knowledge.initial()
        with self.assertRaises(AttributeError):
            knowledge.letters_seen = BitMask.of([1])
        forbidden = [BitMask.EMPTY] * WORDLEN
        snap = Knowledge.snapshot(BitMask.EMPTY, BitMask.EMPTY, forbidden,
                                  [BitMask.EMPTY] * WORDLEN)
        forbidden[0] = BitMask.of([1])
        assert snap.forbidden_by_slot[0].is_empty

    def test_duplicate_letter_feedback(self) -> None:
        # ERROR against TERRA gives "--=__": the middle R is correct, the
        # first R takes the remaining R, and the last R is surplus.
        words = ["error", "terra", "sorry"]
        guesser = ScriptedGuesser(["error"])
        solver = Solver(guesser, KnownSolutionFeedbackProvider("terra"),
                        words, reporter=RecordingReporter())
        result = solver.solve(random.Random(1))
        assert result.solved
        assert result.guesses == [Word.create("error"), Word.create("terra")]

    def test_solves_every_word(self) -> None:
        for name in GUESSERS:
            for target in TEST_WORDS:
                reporter = RecordingReporter()
                guesser = RecordingGuesser()
                solver = Solver(GUESSERS[name](),
                                KnownSolutionFeedbackProvider(target),
                                TEST_WORDS, reporter=reporter)
                result = solver.solve(random.Random(7),
                                      max_attempts=len(TEST_WORDS))
                assert result.solved, f"{name} failed on {target}: {result}"
                assert result.solution == Word.create(target)
                counts = [n for _, _, n in reporter.guesses]
                assert counts == sorted(counts, reverse=True), (
                    f"Candidate counts grew: {counts}")

                solver = Solver(guesser,
                                KnownSolutionFeedbackProvider(target),
                                TEST_WORDS, reporter=reporter)
                solver.solve(random.Random(7), max_attempts=len(TEST_WORDS))
                for before, after in zip(guesser.partial_solutions,
                                         guesser.partial_solutions[1:]):
                    for pos in range(WORDLEN):
                        if before[pos] != BLANK:
                            assert after[pos] == before[pos]

    def test_determinism(self) -> None:
        def run(seed: int) -> SolveResult:
            solver = Solver(RandomGuesser(),
                            KnownSolutionFeedbackProvider("steal"),
                            TEST_WORDS, reporter=RecordingReporter())
            return solver.solve(random.Random(seed))

        r1 = run(42)
        r2 = run(42)
        assert r1.guesses == r2.guesses
        assert r1.state == r2.state
        assert r1.solution == r2.solution

        solver = Solver(RandomGuesser(),
                        KnownSolutionFeedbackProvider("steal"),
                        TEST_WORDS, reporter=RecordingReporter())
        d1 = solver.solve_for_date(datetime.date(2022, 2, 9))
        d2 = solver.solve_for_date(datetime.date(2022, 2, 9))
        assert d1.guesses == d2.guesses

    def test_seed(self) -> None:
        assert get_seed(datetime.date(2022, 2, 9)) == 20220209
        assert get_seed(datetime.date(1999, 12, 31)) == 19991231

    def test_add_common_positional_chars(self) -> None:
        remaining = [Word.create(w) for w in ("crane", "crate", "craze")]
        partial = add_common_positional_chars(remaining, Word.EMPTY)
        assert str(partial) == "CRA E"


class TestGuessers(unittest.TestCase):
    def test_random_guesser(self) -> None:
        candidates = [Word.create(w) for w in TEST_WORDS]
        rng = random.Random(3)
        for _ in range(20):
            guess = RandomGuesser().guess(rng, Word.EMPTY, candidates,
                                          Knowledge.initial(), 1, 6)
            assert guess in candidates
        assert random_element([], rng) is None

    def test_unknown_letter_explorer(self) -> None:
        candidates = [Word.create(w)
                      for w in ("fuzzy", "crane", "crate", "trace")]
        rng = random.Random(3)
        guess = UnknownLetterExplorer().guess(
            rng, Word.EMPTY, candidates, Knowledge.initial(), 1, 6)
        assert str(guess) in ("CRATE", "TRACE")

        seen = Knowledge.snapshot(
            letters_seen=BitMask.of(_code(c) for c in "CRAE"),
            letters_excluded=BitMask.EMPTY,
            forbidden_by_slot=[BitMask.EMPTY] * WORDLEN,
            possible_by_slot=[BitMask.EMPTY] * WORDLEN,
        )
        guess = UnknownLetterExplorer().guess(
            rng, Word.EMPTY, candidates, seen, 2, 5)
        assert str(guess) == "FUZZY"

    def test_positional_explorer(self) -> None:
        candidates = [Word.create(w)
                      for w in ("crane", "crate", "crave", "brace")]
        rng = random.Random(3)
        guess = PositionalExplorer().guess(
            rng, Word.EMPTY, candidates, Knowledge.initial(), 1, 6)
        assert str(guess) in ("CRANE", "CRATE", "CRAVE")

        possible = [BitMask.EMPTY] * WORDLEN
        possible[3] = BitMask.of([_code("T")])
        knowledge = Knowledge.snapshot(BitMask.EMPTY, BitMask.EMPTY,
                                       [BitMask.EMPTY] * WORDLEN, possible)
        guess = PositionalExplorer().guess(
            rng, Word.EMPTY, candidates, knowledge, 2, 5)
        assert str(guess) == "CRATE"


class TestWordLists(unittest.TestCase):
    def test_read_and_make(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            src = os.path.join(tmpdir, "dict.txt")
            dst = os.path.join(tmpdir, "five.txt")
            with open(src, "wt") as f:
                f.write("slate\nApple\napple\nbanana\nit's\n\ncrane\n")
            make_wordlist(src, dst)
            words = read_words(dst)
            assert list(words) == ["APPLE", "CRANE", "SLATE"]
            assert list(read_words(dst, max_n=2)) == ["APPLE", "SLATE"]

    def test_shipped_wordlist(self) -> None:
        words = read_words(DEFAULT_WORDLIST)
        assert len(words) > 100
        parsed = [Word.create(w) for w in words]
        assert len(set(parsed)) == len(parsed)

    def test_formatting(self) -> None:
        assert quantity(1, "possibility", "possibilities") == "1 possibility"
        assert (quantity(2315, "possibility", "possibilities")
                == "2,315 possibilities")
        assert letters_str(BitMask.of([1, 5])) == "AE"
        assert letters_str(BitMask.EMPTY) == "?"
        assert prettylist([Word.create("apple"), "x"]) == "APPLE, x"


# =============================================================================
# Command-line entry point
# =============================================================================

def parse_date(s: str) -> datetime.date:
    """
    Argument type for YYYY-MM-DD dates.
    """
    try:
        return datetime.date.fromisoformat(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a YYYY-MM-DD date: {s!r}")


def main() -> None:
    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------
    parser = argparse.ArgumentParser(
        "Wordle solver.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--wordlist_filename", default=DEFAULT_WORDLIST,
        help=f"File containing all {WORDLEN}-letter words in upper case"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Be verbose"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cmd_make = "make_wordlist"
    parser_make = subparsers.add_parser(
        cmd_make,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_make.add_argument(
        "--source_dict", default=DEFAULT_OS_DICT,
        help="File of all dictionary words."
    )

    def add_solving_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--guesser", type=str, choices=GUESSERS.keys(),
            default=DEFAULT_GUESSER,
            help="Guess strategy to use"
        )
        p.add_argument(
            "--max_attempts", type=int, default=DEFAULT_MAX_ATTEMPTS,
            help="Maximum number of guesses"
        )

    cmd_solve = "solve"
    parser_solve = subparsers.add_parser(
        cmd_solve,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_solve.add_argument(
        "--date", type=parse_date, default=None,
        help="Puzzle date (YYYY-MM-DD), used to seed random choices "
             "(default: today)"
    )
    add_solving_args(parser_solve)

    cmd_autosolve = "autosolve"
    parser_autosolve = subparsers.add_parser(
        cmd_autosolve,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_autosolve.add_argument(
        "target", type=str,
        help="The word to find"
    )
    parser_autosolve.add_argument(
        "--seed", type=int, default=None,
        help="Random number seed (default: derived from today's date)"
    )
    add_solving_args(parser_autosolve)

    cmd_test_performance = "test_performance"
    parser_test_performance = subparsers.add_parser(
        cmd_test_performance,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_test_performance.add_argument(
        "--output", type=str, default=None,
        help="File for CSV-format output (if unspecified, a sensible default "
             "will be created based on the guesser chosen)"
    )
    parser_test_performance.add_argument(
        "--nwords", type=int,
        help="Number of words to test (if unspecified, will test all)"
    )
    parser_test_performance.add_argument(
        "--nproc", type=int, default=DEFAULT_NPROC,
        help="Number of parallel processes"
    )
    parser_test_performance.add_argument(
        "--seed", type=int, default=DEFAULT_PERFORMANCE_SEED,
        help="Random number seed for every puzzle"
    )
    parser_test_performance.add_argument(
        "--no_ray", action="store_true",
        help="Use a process pool rather than Ray"
    )
    add_solving_args(parser_test_performance)

    args = parser.parse_args()

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    loglevel = logging.DEBUG if args.verbose else logging.INFO
    main_only_quicksetup_rootlogger(level=loglevel)

    # -------------------------------------------------------------------------
    # Act
    # -------------------------------------------------------------------------
    if args.command == cmd_make:
        make_wordlist(args.source_dict, args.wordlist_filename)
    elif args.command == cmd_solve:
        solve_interactive(
            wordlist_filename=args.wordlist_filename,
            publication_date=args.date,
            max_attempts=args.max_attempts,
            guesser_name=args.guesser,
        )
    elif args.command == cmd_autosolve:
        if not WORD_REGEX.match(args.target):
            parser.error(f"Target must be a {WORDLEN}-letter word")
        seed = (
            args.seed if args.seed is not None
            else get_seed(datetime.date.today())
        )
        autosolve(
            target=args.target,
            all_words=read_words(args.wordlist_filename),
            guesser_name=args.guesser,
            seed=seed,
            max_attempts=args.max_attempts,
        )
    elif args.command == cmd_test_performance:
        output_filename = (
            args.output or f"out_{args.guesser}.csv"
        )
        measure_guesser_performance(
            wordlist_filename=args.wordlist_filename,
            output_filename=output_filename,
            nwords=args.nwords,
            nproc=args.nproc,
            guesser_name=args.guesser,
            max_attempts=args.max_attempts,
            seed=args.seed,
            loglevel=loglevel,
            use_ray=not args.no_ray,
        )
    else:
        raise AssertionError("argument-parsing bug")


if __name__ == '__main__':
    main()
