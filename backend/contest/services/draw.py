import random
from dataclasses import dataclass
from typing import Protocol, Sequence

WINNING_VIDEO = 'https://www.youtube.com/watch?v=7Gw57AxsgMY'
NON_WINNING_VIDEOS: tuple[str, ...] = (
    'https://www.youtube.com/watch?v=RzVvThhjAKw',
    'https://www.youtube.com/watch?v=AKeUssuu3Is',
    'https://www.youtube.com/watch?v=oSfVgn7oC_I',
    'https://www.youtube.com/watch?v=LjCzPp-MK48',
    'https://www.youtube.com/watch?v=FV9a4ro5ecw',
    'https://www.youtube.com/watch?v=pZVdQLn_E5w',
    'https://www.youtube.com/watch?v=8dRnTwuFYS4',
    'https://www.youtube.com/watch?v=VNu15Qqomt8',
    'https://www.youtube.com/watch?v=KLuTLF3x9sA',
    'https://www.youtube.com/watch?v=UV0mhY2Dxr0',
)


class RandomSource(Protocol):
    def random(self) -> float: ...

    def choice(self, seq: Sequence[str]) -> str: ...


@dataclass(frozen=True)
class OutcomeDraw:
    is_winner: bool
    video_link: str


def draw_outcome(
    rng: RandomSource,
    win_probability: float,
    winning_link: str = WINNING_VIDEO,
    non_winning_links: Sequence[str] = NON_WINNING_VIDEOS,
) -> OutcomeDraw:
    if rng.random() < win_probability:
        return OutcomeDraw(True, winning_link)
    return OutcomeDraw(False, rng.choice(non_winning_links))


def default_rng() -> RandomSource:
    # draws from os.urandom, nothing to seed or replay
    return random.SystemRandom()
