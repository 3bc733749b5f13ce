SYSTEM_PROMPT = """You are a blockchain sentiment analyst. Your task is to analyze a summary of \
token transfers across multiple chains and provide a single sentiment score from -10 \
(very bearish) to 10 (very bullish). High volume could be bullish or bearish. \
Respond ONLY with the numerical score."""


USER_PROMPT = 'Data: "{summary}"'


def build_user_prompt(summary: str) -> str:
    return USER_PROMPT.format(summary=summary)
