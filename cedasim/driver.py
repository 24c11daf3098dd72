"""Debate orchestration: drives capabilities phase by phase and paces reveals.

DebateDriver is the only writer of SimulationState. Every update is a
reducer action applied through _dispatch(), which first checks the run's
CancellationToken, so a result that arrives after reset() is discarded
instead of written.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from config.config_loader import PacingConfig
from cedasim.cancellation import CancellationToken, RunCancelled
from cedasim.capabilities import Capabilities
from cedasim.extraction import ExtractionError
from cedasim.gate import CheckpointGate
from cedasim.models import (
    SECTORS,
    ChatMessage,
    ConstructiveSpeech,
    CrossExamResult,
    EvidenceItem,
    FollowUpRound,
    FramedIssue,
    RebuttalSet,
    Sector,
    Side,
    SimulationState,
)
from cedasim.phases import Phase, can_transition
from cedasim.providers.base import ProviderError
from cedasim.reducer import (
    Action,
    AnalysisReady,
    BeginFraming,
    BeginResearch,
    EditIssue,
    EnterPhase,
    EvidenceAdded,
    Failed,
    FollowUpAnswered,
    FollowUpFinished,
    FollowUpOpened,
    IssueFramed,
    IssueRefined,
    RefineRequested,
    Reset,
    RevealAnswer,
    RevealConclusion,
    RevealContention,
    RevealIntroduction,
    RevealQuestion,
    RevealRebuttal,
    SectorDispatched,
    SectorResearched,
    SetTopic,
    SetTyping,
    reduce,
)
from cedasim.scoring import append_numbered

logger = logging.getLogger(__name__)

REBUTTAL_ROUNDS = 3

WELCOME_MESSAGE = (
    "Here is a first draft of the debate issue. "
    "Confirm it to start research, or tell me what to change."
)

Listener = Callable[[SimulationState], None]


class DebateDriver:
    """Runs one simulation at a time against a set of capabilities.

    Control methods mirror what a UI offers: start, refine, start_research,
    start_debate, follow_up, reset and the pacing toggles. Long-running
    methods are coroutines; they return once their part of the run is
    finished, failed (state.status becomes ERROR) or was cancelled by reset().

    Args:
        capabilities: Agents the run calls.
        pacing: Typing/reading/analysis delays and the auto-play threshold.
        sleep: Awaitable used for pacing delays; tests pass a no-op.
        clock: Wall clock for chat and follow-up timestamps.
        supplementary_research: Ask the research coordinator for one extra
            search per side between cross-examination and rebuttals.
    """

    def __init__(
        self,
        capabilities: Capabilities,
        pacing: PacingConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        supplementary_research: bool = False,
    ) -> None:
        self._caps = capabilities
        self._pacing = pacing or PacingConfig()
        self._sleep = sleep
        self._clock = clock
        self._supplementary_research = supplementary_research
        self._state = SimulationState()
        self._token = CancellationToken()
        self._listeners: list[Listener] = []
        self.gate = CheckpointGate(
            threshold_sec=self._pacing.checkpoint_sec,
            on_change=self._notify,
        )

    # --- Observation -------------------------------------------------------

    @property
    def state(self) -> SimulationState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    def _dispatch(self, token: CancellationToken, action: Action) -> None:
        token.raise_if_cancelled()
        previous = self._state.status
        self._state = reduce(self._state, action)
        if self._state.status is not previous:
            logger.info("Phase %s -> %s", previous.value, self._state.status.value)
        else:
            logger.debug("Applied %s", type(action).__name__)
        self._notify()

    # --- Control surface ---------------------------------------------------

    def set_topic(self, topic: str) -> None:
        self._dispatch(self._token, SetTopic(topic))

    def edit_issue(self, issue: FramedIssue) -> None:
        """Replace the draft issue by hand while waiting for confirmation."""
        self._dispatch(self._token, EditIssue(issue))

    def reset(self) -> None:
        """Abort the current run and return to idle with manual pacing."""
        self._new_run()
        self.gate.reset()
        self._notify()

    def toggle_autoplay(self) -> bool:
        self.gate.set_autoplay(not self.gate.autoplay)
        return self.gate.autoplay

    def toggle_pause(self) -> bool:
        self.gate.set_paused(not self.gate.paused)
        return self.gate.paused

    def trigger_next(self) -> None:
        self.gate.trigger_next()

    async def start(self, topic: str) -> None:
        """Frame ``topic`` into a draft issue and wait for confirmation."""
        token = self._new_run()
        self._dispatch(token, SetTopic(topic))
        self._dispatch(token, BeginFraming())
        await self._guarded(token, self._frame, "Framing")

    async def refine(self, message: str) -> None:
        """Ask the framer to revise the draft according to ``message``."""
        token = self._token
        self._dispatch(token, RefineRequested(ChatMessage("user", message, self._clock())))
        await self._guarded(token, self._refine, "Refinement")

    async def start_research(self) -> None:
        """Confirm the draft issue and research every sector concurrently."""
        token = self._token
        self._dispatch(token, BeginResearch())
        await self._guarded(token, self._research, "Research")

    async def start_debate(self, focus_topic: str | None = None) -> None:
        """Run constructives, cross-exams, rebuttals and the meta-analysis."""
        token = self._token
        self._dispatch(token, EnterPhase(Phase.PRO_CONSTRUCTIVE))
        self.gate.set_paused(False)
        await self._guarded(token, lambda t: self._debate(t, focus_topic), "Debate")

    async def follow_up(self, question: str) -> None:
        """Put ``question`` to both sides after the debate is complete."""
        token = self._token
        now = self._clock()
        round_ = FollowUpRound(id=f"qa-{int(now * 1000)}", focus_topic=question, timestamp=now)
        self._dispatch(token, FollowUpOpened(round_))
        await self._guarded(token, lambda t: self._answer_follow_up(t, question), "Follow-up")

    # --- Run plumbing ------------------------------------------------------

    def _new_run(self) -> CancellationToken:
        self._token.cancel()
        self._token = CancellationToken()
        self._state = reduce(self._state, Reset())
        return self._token

    async def _guarded(
        self,
        token: CancellationToken,
        body: Callable[[CancellationToken], Awaitable[None]],
        what: str,
    ) -> None:
        """Run ``body``; turn a failure into the error phase, ignore cancellation."""
        try:
            await body(token)
        except RunCancelled:
            logger.info("%s cancelled", what)
        except Exception as exc:
            if token.cancelled:
                logger.debug("%s failed after cancellation, ignored: %s", what, exc)
                return
            message = str(exc) or type(exc).__name__
            logger.error("%s failed: %s", what, message)
            if can_transition(self._state.status, Phase.ERROR):
                self._dispatch(token, Failed(message))

    async def _delay(self, token: CancellationToken, seconds: float) -> None:
        token.raise_if_cancelled()
        await self._sleep(seconds)
        token.raise_if_cancelled()

    async def _typing(self, token: CancellationToken) -> None:
        self._dispatch(token, SetTyping(True))
        await self._delay(token, self._pacing.typing_delay_sec)
        self._dispatch(token, SetTyping(False))

    async def _reading(self, token: CancellationToken) -> None:
        await self._delay(token, self._pacing.reading_delay_sec)

    async def _checkpoint(self, token: CancellationToken) -> None:
        await self.gate.wait(token)
        token.raise_if_cancelled()

    # --- Framing -----------------------------------------------------------

    async def _frame(self, token: CancellationToken) -> None:
        issue = await self._caps.framer.frame(self._state.original_topic)
        welcome = ChatMessage("model", WELCOME_MESSAGE, self._clock())
        self._dispatch(token, IssueFramed(issue, welcome))

    async def _refine(self, token: CancellationToken) -> None:
        state = self._state
        result = await self._caps.framer.refine(list(state.framing_chat), state.framed_issue)
        reply = ChatMessage("model", result.message, self._clock())
        self._dispatch(token, IssueRefined(result.draft, reply))

    # --- Research ----------------------------------------------------------

    async def _research(self, token: CancellationToken) -> None:
        issue = self._state.framed_issue
        await asyncio.gather(*(self._research_sector(token, issue, sector) for sector in SECTORS))
        self._dispatch(token, EnterPhase(Phase.RESEARCH_COMPLETED))
        logger.info("Research complete: %d evidence items", len(self._state.evidence_board or ()))

    async def _research_sector(self, token: CancellationToken, issue: FramedIssue, sector: Sector) -> None:
        self._dispatch(token, SectorDispatched(sector))
        try:
            evidence = await self._caps.researcher.research_sector(issue, sector)
        except RunCancelled:
            raise
        except Exception as exc:
            # One failed sector must not sink the others.
            logger.warning("Research failed for sector %s: %s", sector.value, exc)
            evidence = []
        self._dispatch(token, SectorResearched(sector, tuple(evidence)))

    async def _supplementary(self, token: CancellationToken, issue: FramedIssue) -> None:
        state = self._state
        evidence = state.evidence_board or ()
        try:
            plan = await self._caps.coordinator.plan(issue, state.arguments, evidence)
            pro_items, con_items = await asyncio.gather(
                self._caps.researcher.research_sector(
                    issue, plan.pro_sector, existing_headlines=[e.content for e in evidence],
                    query=plan.pro_query, limit=1,
                ),
                self._caps.researcher.research_sector(
                    issue, plan.con_sector, existing_headlines=[e.content for e in evidence],
                    query=plan.con_query, limit=1,
                ),
            )
        except (ProviderError, ExtractionError) as exc:
            logger.warning("Supplementary research skipped: %s", exc)
            return
        added = append_numbered(evidence, list(pro_items) + list(con_items))
        if added:
            self._dispatch(token, EvidenceAdded(added))
        logger.info("Supplementary research added %d evidence items", len(added))

    # --- Debate ------------------------------------------------------------

    def _evidence(self) -> tuple[EvidenceItem, ...]:
        return self._state.evidence_board or ()

    async def _reveal_speech(self, token: CancellationToken, side: Side, speech: ConstructiveSpeech) -> None:
        await self._typing(token)
        self._dispatch(token, RevealIntroduction(side, speech.introduction))
        await self._reading(token)
        for index, contention in enumerate(speech.contentions):
            await self._typing(token)
            self._dispatch(token, RevealContention(side, index, contention))
            await self._reading(token)
        await self._typing(token)
        self._dispatch(token, RevealConclusion(side, speech.conclusion))
        await self._reading(token)

    async def _reveal_cross_exam(self, token: CancellationToken, result: CrossExamResult) -> None:
        for index, question in enumerate(result.questions):
            await self._typing(token)
            self._dispatch(token, RevealQuestion(result.asker, question))
            await self._reading(token)
            if index < len(result.answers):
                await self._typing(token)
                self._dispatch(token, RevealAnswer(result.asker, result.answers[index]))
                await self._reading(token)

    async def _speak_rebuttal(
        self,
        token: CancellationToken,
        side: Side,
        turn_index: int,
        focus_topic: str | None,
    ) -> None:
        history = self._state.rebuttals or RebuttalSet()
        opponent_items = history.items(side.opponent)
        # Con opens each round, so Con answers Pro's previous round; Pro answers Con's current one.
        last_index = turn_index - 1 if side is Side.CON else turn_index
        last_opponent = opponent_items[last_index] if 0 <= last_index < len(opponent_items) else None
        item = await self._caps.rebuttal(side).turn(
            self._state.arguments,
            self._evidence(),
            history,
            last_opponent,
            turn_index,
            focus_topic,
        )
        await self._typing(token)
        self._dispatch(token, RevealRebuttal(side, item))
        await self._reading(token)
        await self._checkpoint(token)

    async def _debate(self, token: CancellationToken, focus_topic: str | None) -> None:
        issue = self._state.framed_issue

        pro_speech = await self._caps.advocate(Side.PRO).constructive(issue, self._evidence(), focus_topic)
        await self._reveal_speech(token, Side.PRO, pro_speech)

        self._dispatch(token, EnterPhase(Phase.CON_CX))
        await self._checkpoint(token)
        con_cx = await self._caps.cross_examiner(Side.CON).examine(
            self._state.arguments, self._evidence(), focus_topic,
        )
        await self._reveal_cross_exam(token, con_cx)

        self._dispatch(token, EnterPhase(Phase.CON_CONSTRUCTIVE))
        await self._checkpoint(token)
        con_speech = await self._caps.advocate(Side.CON).constructive(issue, self._evidence(), focus_topic)
        await self._reveal_speech(token, Side.CON, con_speech)

        self._dispatch(token, EnterPhase(Phase.PRO_CX))
        await self._checkpoint(token)
        pro_cx = await self._caps.cross_examiner(Side.PRO).examine(
            self._state.arguments, self._evidence(), focus_topic,
        )
        await self._reveal_cross_exam(token, pro_cx)

        if self._supplementary_research:
            await self._supplementary(token, issue)

        self._dispatch(token, EnterPhase(Phase.REBUTTAL))
        await self._checkpoint(token)
        for turn_index in range(REBUTTAL_ROUNDS):
            await self._speak_rebuttal(token, Side.CON, turn_index, focus_topic)
            await self._speak_rebuttal(token, Side.PRO, turn_index, focus_topic)

        self._dispatch(token, EnterPhase(Phase.ANALYZING))
        await self._delay(token, self._pacing.analysis_delay_sec)
        state = self._state
        analysis = await self._caps.analyst.analyze(
            issue,
            self._evidence(),
            state.arguments,
            state.rebuttals or RebuttalSet(),
            state.cross_exam,
        )
        self._dispatch(token, AnalysisReady(analysis))

    # --- Follow-up ---------------------------------------------------------

    async def _answer_follow_up(self, token: CancellationToken, question: str) -> None:
        issue = self._state.framed_issue
        evidence = self._evidence()
        pro_answer, con_answer = await asyncio.gather(
            self._caps.advocate(Side.PRO).answer(issue, evidence, question),
            self._caps.advocate(Side.CON).answer(issue, evidence, question),
        )
        await self._typing(token)
        self._dispatch(token, FollowUpAnswered(Side.PRO, pro_answer))
        await self._reading(token)
        await self._typing(token)
        self._dispatch(token, FollowUpAnswered(Side.CON, con_answer))
        self._dispatch(token, FollowUpFinished())
