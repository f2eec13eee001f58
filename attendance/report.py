"""Message text for prompts and tally reports."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from .models import Participant, TallyResult

SEPARATOR = "━━━━━━━━━━━━━━━━━━━━━"

WEEKDAYS = [
	"Segunda-feira",
	"Terça-feira",
	"Quarta-feira",
	"Quinta-feira",
	"Sexta-feira",
	"Sábado",
	"Domingo",
]


def format_date(d: date) -> str:
	return d.strftime("%d/%m/%Y")


def weekday_name(d: date) -> str:
	return WEEKDAYS[d.weekday()]


def prompt_marker(d: date) -> str:
	"""Text every prompt carries, used to find it again in history."""
	return f"Tiragem de Falta - {format_date(d)}"


def format_participants(participants: Iterable[Participant]) -> str:
	lines = [f"📱 {p.handle}" for p in participants]
	return "\n".join(lines) if lines else "Nenhum"


def format_report(result: TallyResult) -> str:
	pending = len(result.no_response)
	pending_text = format_participants(result.no_response) if pending else "Todos responderam! 🎉"

	return (
		"📊 **RESULTADO DA TIRAGEM DE FALTA** 📊\n\n"
		f"📅 {format_date(result.day)}\n\n"
		f"{SEPARATOR}\n\n"
		f"✅ **PRESENTES ({len(result.present)}):**\n{format_participants(result.present)}\n\n"
		f"❌ **AUSENTES ({len(result.absent)}):**\n{format_participants(result.absent)}\n\n"
		f"🏥 **ATESTADO/JUSTIFICATIVA ({len(result.excused)}):**\n{format_participants(result.excused)}\n\n"
		f"⚠️ **SEM RESPOSTA ({pending}):**\n{pending_text}\n\n"
		f"{SEPARATOR}\n"
		f"📈 **RESUMO:** {result.responded_count}/{result.total} responderam"
	)


def format_announcement(text: str, mention_text: str) -> str:
	return (
		"🚨 **AVISO IMPORTANTE** 🚨\n\n"
		f"📢 {text}\n\n"
		f"{SEPARATOR}\n"
		"👥 **Atenção todos:**\n"
		f"{mention_text}"
	)


__all__ = [
	"format_date",
	"weekday_name",
	"prompt_marker",
	"format_participants",
	"format_report",
	"format_announcement",
	"SEPARATOR",
]
