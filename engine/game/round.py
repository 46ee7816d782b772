"""Round controller: one blackjack round at a time against a bound shoe."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from random import Random
from typing import Mapping

from engine.bets import Bet, SideBetType
from engine.cards import Card
from engine.dealer import play_dealer_to_completion
from engine.errors import IllegalActionError, RoundAbortedError, ShoeExhaustedError
from engine.game.events import EventEmitter, EventHandler, EventType
from engine.game.phases import Clock, GamePhase, PhaseMachine, TransitionReason
from engine.hand import Hand, is_blackjack
from engine.resolver import RoundResult, determine_result, settle_bet
from engine.rules import GameRules, TableLimits
from engine.shoe import Shoe, create_shoe
from engine.snapshot import RoundSnapshot
from engine.side_bets import (
    SideBetContext,
    evaluate_insurance,
    evaluate_side_bet,
    max_insurance,
    settle_side_bet,
)
from engine.strategy.basic import Action, AdvisorFlags, get_advisor

logger = logging.getLogger(__name__)


@dataclass
class TableState:
    """
    Per-session state owned by the caller.

    The controller debits stakes when they are placed and credits payouts
    at settlement; every settled bet lands in `bet_history`.
    """

    bankroll: Decimal = Decimal("1000")
    bet_history: list[Bet] = field(default_factory=list)
    rounds_played: int = 0

    def __post_init__(self) -> None:
        self.bankroll = Decimal(str(self.bankroll))

    def debit(self, amount: Decimal) -> None:
        if amount > self.bankroll:
            raise IllegalActionError(
                f"Insufficient funds: need {amount}, have {self.bankroll}"
            )
        self.bankroll -= amount

    def credit(self, amount: Decimal) -> None:
        self.bankroll += amount

    @property
    def main_bets(self) -> list[Bet]:
        return [bet for bet in self.bet_history if not bet.is_side_bet]


class RoundController:
    """
    Blackjack round sequencing.

    UI-agnostic: callers drive it through method calls and observe it
    through events, query methods and snapshots. The phase machine gates
    every operation.
    """

    def __init__(
        self,
        rules: GameRules | None = None,
        limits: TableLimits | None = None,
        shoe: Shoe | None = None,
        state: TableState | None = None,
        rng: Random | None = None,
        advisor: str = "basic",
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize a controller and take ownership of its shoe.

        Args:
            rules: Table rules (defaults if not provided)
            limits: Table limits (defaults if not provided)
            shoe: Shoe to deal from; a fresh shuffled shoe is built from the rules otherwise
            state: Session state (bankroll and bet history)
            rng: Random number generator for the default shoe
            advisor: Advisor key used by `recommended_action`
            clock: Time source for the phase machine
        """
        self.rules = rules or GameRules()
        self.limits = limits or TableLimits()
        self.state = state or TableState()
        self.shoe = shoe or create_shoe(
            num_decks=self.rules.num_decks,
            penetration=self.rules.penetration,
            rng=rng,
        )
        self.shoe.bind(self)

        self.phases = PhaseMachine(clock=clock)
        self.events = EventEmitter()
        self.advisor = get_advisor(advisor, self.rules)

        self._reset_round()

    def _reset_round(self) -> None:
        self.player_hands: list[Hand] = []
        self.dealer_hand = Hand()
        self.hand_bets: dict[str, Bet] = {}
        self.side_bets: list[Bet] = []
        self.insurance_bet: Bet | None = None
        self.results: dict[str, RoundResult] = {}
        self.current_hand_index = 0
        self.splits_made = 0
        self._initial_player_cards: tuple[Card, ...] = ()
        self._insurance_pending = False
        self._aborted = False

    # Lifecycle

    def close(self) -> None:
        """Release the shoe so another controller can bind it."""
        self.shoe.release(self)

    def __enter__(self) -> "RoundController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def subscribe(self, handler: EventHandler, event_type: EventType | None = None) -> None:
        self.events.subscribe(handler, event_type)

    # Queries

    @property
    def phase(self) -> GamePhase:
        return self.phases.phase

    @property
    def is_aborted(self) -> bool:
        return self._aborted

    @property
    def current_hand(self) -> Hand | None:
        if 0 <= self.current_hand_index < len(self.player_hands):
            return self.player_hands[self.current_hand_index]
        return None

    @property
    def dealer_up_card(self) -> Card | None:
        return self.dealer_hand.cards[0] if self.dealer_hand.cards else None

    @property
    def insurance_offered(self) -> bool:
        return self._insurance_pending

    @property
    def round_bets(self) -> list[Bet]:
        """Every bet of the current round: main bets in hand order, then side bets."""
        bets = [self.hand_bets[hand.hand_id] for hand in self.player_hands]
        if self.insurance_bet is not None:
            bets.append(self.insurance_bet)
        return bets + self.side_bets

    @property
    def round_net(self) -> Decimal:
        return sum((bet.net for bet in self.round_bets), Decimal("0"))

    def _bet_for(self, hand: Hand) -> Bet:
        return self.hand_bets[hand.hand_id]

    def _in_player_turn(self) -> Hand | None:
        if self._aborted or self.phase is not GamePhase.PLAYER_TURN:
            return None
        return self.current_hand

    @property
    def can_hit(self) -> bool:
        hand = self._in_player_turn()
        return hand is not None and not hand.is_finished

    @property
    def can_stand(self) -> bool:
        hand = self._in_player_turn()
        return hand is not None and (not hand.is_finished or self.can_split)

    @property
    def can_double(self) -> bool:
        hand = self._in_player_turn()
        if hand is None or not self.rules.double_allowed or not hand.can_double:
            return False
        if hand.is_split and not self.rules.double_after_split:
            return False
        if hand.restricted_to_one_card:
            return False
        return self._bet_for(hand).amount <= self.state.bankroll

    @property
    def can_split(self) -> bool:
        hand = self._in_player_turn()
        if hand is None or not hand.can_split or hand.is_resolved:
            return False
        if self.splits_made >= self.rules.max_splits:
            return False
        if hand.cards[0].is_ace and hand.is_split and not self.rules.resplit_aces:
            return False
        return self._bet_for(hand).amount <= self.state.bankroll

    @property
    def can_surrender(self) -> bool:
        hand = self._in_player_turn()
        return (
            hand is not None
            and self.rules.surrender_allowed
            and len(self.player_hands) == 1
            and len(hand.cards) == 2
            and not hand.is_split
            and not hand.is_finished
        )

    @property
    def can_insure(self) -> bool:
        if not self._insurance_pending or not self.player_hands:
            return False
        return self.state.bankroll > 0

    def available_actions(self) -> list[Action]:
        checks = (
            (Action.HIT, self.can_hit),
            (Action.STAND, self.can_stand),
            (Action.DOUBLE, self.can_double),
            (Action.SPLIT, self.can_split),
            (Action.SURRENDER, self.can_surrender),
        )
        return [action for action, allowed in checks if allowed]

    def recommended_action(self) -> Action | None:
        """Advisor's pick for the current hand, or None outside the player turn."""
        hand = self._in_player_turn()
        if hand is None or self.dealer_up_card is None:
            return None
        flags = AdvisorFlags(
            can_double=self.can_double,
            can_split=self.can_split,
            can_surrender=self.can_surrender,
        )
        return self.advisor.recommend(hand, self.dealer_up_card, flags)

    def snapshot(self) -> RoundSnapshot:
        """Read-only view of the table for the presentation layer."""
        return RoundSnapshot.capture(self)

    # Round flow

    def _advance_phase(self, phase: GamePhase, reason: TransitionReason) -> None:
        previous = self.phase
        self.phases.transition_to(phase, reason)
        self.events.emit_new(
            EventType.PHASE_CHANGED,
            from_phase=previous.value,
            to_phase=phase.value,
            reason=reason.name.lower(),
        )

    def _check_not_aborted(self) -> None:
        if self._aborted:
            raise RoundAbortedError("Round was aborted; call finish_round() to continue")

    def _draw(self, face_up: bool = True) -> Card:
        try:
            return self.shoe.draw(face_up=face_up)
        except ShoeExhaustedError as exc:
            self._abort(exc)
            raise

    def _deal_to(self, hand: Hand, owner: str, face_up: bool = True) -> Card:
        card = self._draw(face_up=face_up)
        hand.add_card(card)
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card),
            hand=owner,
            hand_value=hand.value,
        )
        return card

    def start_round(
        self,
        amount: Decimal | int,
        side_bets: Mapping[SideBetType, Decimal | int] | None = None,
    ) -> GamePhase:
        """
        Place the main bet (and optional side bets) and deal.

        Returns:
            The phase the round is in once the deal is done
        """
        self._check_not_aborted()
        if self.phase is not GamePhase.BETTING:
            raise IllegalActionError(f"Cannot start a round during {self.phase.value}")

        amount = Decimal(str(amount))
        if not self.limits.allows_bet(amount):
            raise IllegalActionError(
                f"Bet must be between {self.limits.minimum_bet} and {self.limits.maximum_bet}"
            )

        side_amounts = {kind: Decimal(str(value)) for kind, value in (side_bets or {}).items()}
        if SideBetType.INSURANCE in side_amounts:
            raise IllegalActionError("Insurance is only offered against a dealer ace")
        for kind, side_amount in side_amounts.items():
            if not self.limits.allows_side_bet(side_amount):
                raise IllegalActionError(
                    f"{kind.value} bet must be between {self.limits.minimum_side_bet}"
                    f" and {self.limits.maximum_side_bet}"
                )

        total = amount + sum(side_amounts.values(), Decimal("0"))
        if total > self.state.bankroll:
            raise IllegalActionError(
                f"Insufficient funds: need {total}, have {self.state.bankroll}"
            )

        # History covers the round in progress only
        self.events.clear_history()
        self.phases.clear_history()
        self._reset_round()
        if self.shoe.needs_shuffle:
            self.shoe.shuffle()
            self.events.emit_new(EventType.SHOE_SHUFFLED, cards=self.shoe.total_cards)

        hand = Hand()
        self.player_hands = [hand]
        self.state.debit(amount)
        self.hand_bets[hand.hand_id] = Bet(amount=amount, hand_id=hand.hand_id)
        self.events.emit_new(EventType.BET_PLACED, amount=amount)

        for kind, side_amount in side_amounts.items():
            self.state.debit(side_amount)
            self.side_bets.append(Bet(amount=side_amount, hand_id=hand.hand_id, side_bet=kind))
            self.events.emit_new(EventType.SIDE_BET_PLACED, side_bet=kind.value, amount=side_amount)

        self._advance_phase(GamePhase.DEALING, TransitionReason.BET_PLACED)
        logger.info("Round started: bet %s, bankroll %s", amount, self.state.bankroll)

        # Deal: player, dealer, player, dealer (face down)
        self._deal_to(hand, "player")
        self._deal_to(self.dealer_hand, "dealer")
        self._deal_to(hand, "player")
        self._deal_to(self.dealer_hand, "dealer", face_up=False)
        self._initial_player_cards = tuple(hand.cards)

        self.events.emit_new(EventType.ROUND_STARTED, player=str(hand), dealer=str(self.dealer_hand))
        if hand.is_blackjack:
            self.events.emit_new(EventType.PLAYER_BLACKJACK)

        if self.rules.insurance_allowed and self.dealer_up_card.is_ace and not hand.is_blackjack:
            self._insurance_pending = True
            self.events.emit_new(EventType.INSURANCE_OFFERED, maximum=max_insurance(amount))
            return self.phase

        return self._after_deal()

    def take_insurance(self, amount: Decimal | int | None = None) -> GamePhase:
        """Insure against a dealer blackjack; defaults to half the main bet."""
        self._check_not_aborted()
        if not self._insurance_pending:
            raise IllegalActionError("Insurance is not on offer")

        main_amount = self._bet_for(self.player_hands[0]).amount
        limit = max_insurance(main_amount)
        stake = Decimal(str(amount)) if amount is not None else limit
        if stake <= 0 or stake > limit:
            raise IllegalActionError(f"Insurance must be above 0 and at most {limit}")

        self.state.debit(stake)
        self.insurance_bet = Bet(
            amount=stake,
            hand_id=self.player_hands[0].hand_id,
            side_bet=SideBetType.INSURANCE,
        )
        self._insurance_pending = False
        self.events.emit_new(EventType.INSURANCE_TAKEN, amount=stake)
        return self._after_deal()

    def decline_insurance(self) -> GamePhase:
        self._check_not_aborted()
        if not self._insurance_pending:
            raise IllegalActionError("Insurance is not on offer")
        self._insurance_pending = False
        self.events.emit_new(EventType.INSURANCE_DECLINED)
        return self._after_deal()

    def _dealer_has_natural(self) -> bool:
        return is_blackjack([card.turned_up() for card in self.dealer_hand.cards])

    def _reveal_dealer(self) -> None:
        self.dealer_hand.reveal()
        self.events.emit_new(
            EventType.DEALER_REVEALS,
            hand=str(self.dealer_hand),
            hand_value=self.dealer_hand.value,
        )

    def _after_deal(self) -> GamePhase:
        """Dealer peek, then either settle at once or hand over to the player."""
        up_card = self.dealer_up_card
        if (up_card.is_ace or up_card.is_ten_value) and self._dealer_has_natural():
            self._reveal_dealer()
            self.events.emit_new(EventType.DEALER_BLACKJACK)
            self._advance_phase(GamePhase.SETTLEMENT, TransitionReason.DEALER_BLACKJACK)
            self._settle()
            return self.phase

        if self.player_hands[0].is_blackjack:
            self._reveal_dealer()
            self._advance_phase(GamePhase.SETTLEMENT, TransitionReason.PLAYER_BLACKJACK)
            self._settle()
            return self.phase

        self._advance_phase(GamePhase.PLAYER_TURN, TransitionReason.CARDS_DEALT)
        return self.phase

    def _require_player_turn(self) -> Hand:
        self._check_not_aborted()
        if self.phase is not GamePhase.PLAYER_TURN:
            raise IllegalActionError(f"No player action allowed during {self.phase.value}")
        hand = self.current_hand
        if hand is None:
            raise IllegalActionError("No hand in play")
        return hand

    def hit(self) -> GamePhase:
        hand = self._require_player_turn()
        if hand.is_finished:
            raise IllegalActionError(f"Cannot hit a finished hand: {hand}")
        hand.hit(self._draw())
        self.events.emit_new(EventType.PLAYER_HIT, hand_index=self.current_hand_index, hand_value=hand.value)
        if hand.is_busted:
            self.events.emit_new(EventType.PLAYER_BUSTS, hand_index=self.current_hand_index)
        return self._advance_hands()

    def stand(self) -> GamePhase:
        hand = self._require_player_turn()
        hand.stand()
        self.events.emit_new(EventType.PLAYER_STAND, hand_index=self.current_hand_index, hand_value=hand.value)
        return self._advance_hands()

    def double_down(self) -> GamePhase:
        hand = self._require_player_turn()
        if not self.can_double:
            raise IllegalActionError(f"Cannot double: {hand}")

        bet = self._bet_for(hand)
        self.state.debit(bet.amount)
        bet.double()
        hand.double(self._draw())
        self.events.emit_new(
            EventType.PLAYER_DOUBLE,
            hand_index=self.current_hand_index,
            hand_value=hand.value,
            new_bet=bet.amount,
        )
        if hand.is_busted:
            self.events.emit_new(EventType.PLAYER_BUSTS, hand_index=self.current_hand_index)
        return self._advance_hands()

    def split(self) -> GamePhase:
        hand = self._require_player_turn()
        if not self.can_split:
            raise IllegalActionError(f"Cannot split: {hand}")

        bet = self._bet_for(hand)
        self.state.debit(bet.amount)
        first, second = hand.split()
        if self.rules.hit_split_aces:
            first.restricted_to_one_card = second.restricted_to_one_card = False

        index = self.current_hand_index
        self.player_hands[index : index + 1] = [first, second]
        del self.hand_bets[hand.hand_id]
        bet.hand_id = first.hand_id
        self.hand_bets[first.hand_id] = bet
        self.hand_bets[second.hand_id] = Bet(amount=bet.amount, hand_id=second.hand_id)
        self.splits_made += 1

        self._deal_to(first, "player")
        self._deal_to(second, "player")
        self.events.emit_new(
            EventType.PLAYER_SPLIT,
            hand_index=index,
            hand1_value=first.value,
            hand2_value=second.value,
        )
        return self._advance_hands()

    def surrender(self) -> GamePhase:
        hand = self._require_player_turn()
        if not self.can_surrender:
            raise IllegalActionError(f"Cannot surrender: {hand}")
        hand.surrender()
        self.events.emit_new(EventType.PLAYER_SURRENDER, hand_index=self.current_hand_index)
        return self._advance_hands()

    def play(self, action: Action) -> GamePhase:
        """Apply an action by enum."""
        handlers = {
            Action.HIT: self.hit,
            Action.STAND: self.stand,
            Action.DOUBLE: self.double_down,
            Action.SPLIT: self.split,
            Action.SURRENDER: self.surrender,
        }
        if action not in handlers:
            raise IllegalActionError(f"Not a playable action: {action}")
        return handlers[action]()

    def _advance_hands(self) -> GamePhase:
        """Skip past finished hands; once none is left the dealer plays."""
        while self.current_hand is not None and self._hand_done(self.current_hand):
            self.current_hand_index += 1
        if self.current_hand is None:
            self._finish_player_turn()
        return self.phase

    def _hand_done(self, hand: Hand) -> bool:
        """Finished, and not a split ace pair waiting on a resplit decision."""
        return hand.is_finished and not self.can_split

    def _finish_player_turn(self) -> None:
        if all(hand.is_busted or hand.is_surrendered for hand in self.player_hands):
            self._reveal_dealer()
            self._advance_phase(GamePhase.SETTLEMENT, TransitionReason.ALL_HANDS_RESOLVED)
            self._settle()
            return

        self._advance_phase(GamePhase.DEALER_TURN, TransitionReason.PLAYER_DONE)
        self._reveal_dealer()
        try:
            self.dealer_hand = play_dealer_to_completion(
                self.dealer_hand, self.shoe, self.rules.dealer_hits_soft_17
            )
        except ShoeExhaustedError as exc:
            self._abort(exc)
            raise

        if self.dealer_hand.is_busted:
            self.events.emit_new(EventType.DEALER_BUSTS, hand_value=self.dealer_hand.value)
        else:
            self.events.emit_new(EventType.DEALER_STANDS, hand_value=self.dealer_hand.value)
        self._advance_phase(GamePhase.SETTLEMENT, TransitionReason.DEALER_DONE)
        self._settle()

    def _settle(self) -> None:
        """Pay every bet of the round and record it in the session history."""
        dealer_natural = self.dealer_hand.is_blackjack

        for index, hand in enumerate(self.player_hands):
            result = determine_result(hand, self.dealer_hand)
            bet = settle_bet(self._bet_for(hand), result, self.rules.blackjack_payout)
            self.results[hand.hand_id] = result
            self.state.credit(bet.payout)
            self.events.emit_new(
                EventType.BET_SETTLED,
                hand_index=index,
                result=result.value,
                payout=bet.payout,
            )

        if self.insurance_bet is not None:
            settle_side_bet(self.insurance_bet, evaluate_insurance(dealer_natural))
            self.state.credit(self.insurance_bet.payout)
            self.events.emit_new(
                EventType.SIDE_BET_SETTLED,
                side_bet=SideBetType.INSURANCE.value,
                payout=self.insurance_bet.payout,
            )

        if self.side_bets:
            context = SideBetContext(
                player_cards=self._initial_player_cards,
                dealer_up_card=self.dealer_up_card,
                dealer_has_blackjack=dealer_natural,
            )
            for bet in self.side_bets:
                outcome = evaluate_side_bet(bet.side_bet, context)
                settle_side_bet(bet, outcome)
                self.state.credit(bet.payout)
                self.events.emit_new(
                    EventType.SIDE_BET_SETTLED,
                    side_bet=bet.side_bet.value,
                    outcome=outcome.outcome,
                    payout=bet.payout,
                )

        self.state.bet_history.extend(self.round_bets)
        self.state.rounds_played += 1
        self.events.emit_new(EventType.ROUND_ENDED, net=self.round_net, bankroll=self.state.bankroll)
        logger.info("Round settled: net %s, bankroll %s", self.round_net, self.state.bankroll)

    def _abort(self, exc: ShoeExhaustedError) -> None:
        """Refund every open stake and park the round in settlement."""
        self._aborted = True
        self._insurance_pending = False
        for bet in self.round_bets:
            if bet.is_pending:
                bet.cancel()
                self.state.credit(bet.payout)
        self.state.bet_history.extend(self.round_bets)
        if self.phases.can_transition_to(GamePhase.SETTLEMENT):
            self._advance_phase(GamePhase.SETTLEMENT, TransitionReason.ROUND_ABORTED)
        self.events.emit_new(EventType.ROUND_ABORTED, reason=str(exc))
        logger.error("Round aborted: %s", exc)

    def finish_round(self) -> TableState:
        """Clean up after settlement and return to betting."""
        if self.phase is not GamePhase.SETTLEMENT:
            raise IllegalActionError(f"Cannot finish a round during {self.phase.value}")

        self._advance_phase(GamePhase.CLEANUP, TransitionReason.CLEANUP)
        if self._aborted:
            self.shoe.shuffle()
            self.events.emit_new(EventType.SHOE_SHUFFLED, cards=self.shoe.total_cards)
        self._reset_round()
        self._advance_phase(GamePhase.BETTING, TransitionReason.NEW_ROUND)
        return self.state
