"""Caller-facing voice prompts (ru-RU)."""

NUMBER_NOT_FOUND = "Номер не найден в системе. До свидания."
GENERIC_ERROR = "Произошла ошибка. Попробуйте позвонить позже."
AI_UNAVAILABLE = "Ассистент недоступен. Оставьте сообщение после сигнала."
VOICEMAIL_GREETING = "Оставьте сообщение после сигнала."
SUBSCRIBER_UNAVAILABLE = "Абонент недоступен. Оставьте сообщение после сигнала."
RECORDING_SAVED = "Сообщение записано. До свидания."
