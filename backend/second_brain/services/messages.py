"""Canned user-facing texts, keyed by display language."""

from __future__ import annotations

from .models import Language

NO_MATCHES = {
    Language.EN: "Sorry, I couldn't find any notes matching those filters.",
    Language.ZH: "抱歉，根据您的过滤条件，我没有找到任何相关记忆。",
}

SYNTHESIS_FAILED = {
    Language.EN: "Sorry, I had trouble processing your request.",
    Language.ZH: "抱歉，生成回答时出错了。",
}

WELCOME = {
    Language.EN: "Hi! I am your Second Brain. Ask me anything about what you saved.",
    Language.ZH: "你好！我是你的第二大脑。你可以问我任何关于你保存的信息。",
}

ANSWER_IN = {
    Language.EN: "IMPORTANT: Answer in English.",
    Language.ZH: "IMPORTANT: Answer in Chinese (Simplified).",
}

GENERATE_IN = {
    Language.EN: "IMPORTANT: Generate the summary, tags, and category in English.",
    Language.ZH: "IMPORTANT: Generate the summary, tags, and category in Chinese (Simplified).",
}
