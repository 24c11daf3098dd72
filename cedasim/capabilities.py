"""The set of capability agents one debate run is wired to."""

from dataclasses import dataclass

from config.config_loader import AppConfig
from cedasim.agents.advocate import Advocate
from cedasim.agents.analyst import MetaAnalyst
from cedasim.agents.coordinator import ResearchCoordinator
from cedasim.agents.cross_examiner import CrossExaminer
from cedasim.agents.framer import IssueFramer
from cedasim.agents.rebuttal import RebuttalSpeaker
from cedasim.agents.researcher import NeutralResearcher
from cedasim.models import Side
from cedasim.providers.base import AIProvider


@dataclass
class Capabilities:
    framer: IssueFramer
    researcher: NeutralResearcher
    coordinator: ResearchCoordinator
    analyst: MetaAnalyst
    pro_advocate: Advocate
    con_advocate: Advocate
    pro_cross_examiner: CrossExaminer
    con_cross_examiner: CrossExaminer
    pro_rebuttal: RebuttalSpeaker
    con_rebuttal: RebuttalSpeaker

    def advocate(self, side: Side) -> Advocate:
        return self.pro_advocate if side is Side.PRO else self.con_advocate

    def cross_examiner(self, side: Side) -> CrossExaminer:
        return self.pro_cross_examiner if side is Side.PRO else self.con_cross_examiner

    def rebuttal(self, side: Side) -> RebuttalSpeaker:
        return self.pro_rebuttal if side is Side.PRO else self.con_rebuttal


def build_capabilities(provider: AIProvider, config: AppConfig, language: str | None = None) -> Capabilities:
    """Wire every agent to ``provider`` with the configured prompts and retry policy."""
    shared = dict(
        provider=provider,
        prompts=config.prompts,
        language=language or config.defaults.language,
        retry=config.retry,
    )
    return Capabilities(
        framer=IssueFramer(**shared),
        researcher=NeutralResearcher(**shared),
        coordinator=ResearchCoordinator(**shared),
        analyst=MetaAnalyst(**shared),
        pro_advocate=Advocate(Side.PRO, **shared),
        con_advocate=Advocate(Side.CON, **shared),
        pro_cross_examiner=CrossExaminer(Side.PRO, **shared),
        con_cross_examiner=CrossExaminer(Side.CON, **shared),
        pro_rebuttal=RebuttalSpeaker(Side.PRO, **shared),
        con_rebuttal=RebuttalSpeaker(Side.CON, **shared),
    )
