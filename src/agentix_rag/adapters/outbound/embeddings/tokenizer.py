"""BERT-style tokenizer for local embedding models.

Token ids come from a deterministic hash of each lowercased surface token,
folded into a fixed vocabulary range. This is a placeholder vocabulary, not
a trained WordPiece vocabulary: embeddings produced with it are internally
consistent (index and query share the scheme) but do not match the token
ids a pretrained checkpoint was trained on. A tokenizer backed by a real
vocabulary can replace this class as long as it exposes ``tokenize``.
"""

import hashlib
import re

from ....common.utils import normalize_whitespace
from ....core.domain import TokenizationResult

MAX_SEQUENCE_LENGTH = 512
CLS_TOKEN_ID = 101
SEP_TOKEN_ID = 102
PAD_TOKEN_ID = 0
UNK_TOKEN_ID = 100

# Hashed ids land in [VOCAB_OFFSET, VOCAB_OFFSET + VOCAB_RANGE)
VOCAB_OFFSET = 1000
VOCAB_RANGE = 29000
PAD_MULTIPLE = 8

_SPLIT_RE = re.compile(r"(\W+)")
_PUNCT_RE = re.compile(r"^\W+$")


class BertTokenizer:
    """Converts text into ``[CLS] tokens... [SEP] [PAD]...`` id sequences."""

    def __init__(self, max_sequence_length: int = MAX_SEQUENCE_LENGTH) -> None:
        if max_sequence_length < 2:
            raise ValueError("max_sequence_length must leave room for [CLS] and [SEP]")
        self.max_sequence_length = max_sequence_length

    def tokenize(self, text: str) -> TokenizationResult:
        """Tokenize text into input ids and an attention mask.

        Empty or whitespace-only text yields ``[CLS, SEP]`` with mask ``[1, 1]``.
        Any other string gets a best-effort tokenization; nothing raises.
        """
        if not text or not text.strip():
            return TokenizationResult(
                input_ids=[CLS_TOKEN_ID, SEP_TOKEN_ID],
                attention_mask=[1, 1],
            )

        words = self.split_words(normalize_whitespace(text))
        token_ids = [self.token_id(word) for word in words]
        return self._frame(token_ids)

    @staticmethod
    def split_words(text: str) -> list[str]:
        """Split on runs of non-word characters, keeping punctuation as tokens."""
        words = []
        for token in _SPLIT_RE.split(text):
            if not token or token.isspace():
                continue
            if _PUNCT_RE.match(token):
                words.append(token.strip())
            else:
                words.append(token.lower().strip())
        return [word for word in words if word]

    @staticmethod
    def token_id(word: str) -> int:
        """Stable id for a surface token (same word, same id, across processes)."""
        if not word:
            return UNK_TOKEN_ID
        digest = hashlib.md5(word.lower().encode("utf-8"), usedforsecurity=False).digest()
        return int.from_bytes(digest[:4], "big") % VOCAB_RANGE + VOCAB_OFFSET

    def _frame(self, token_ids: list[int]) -> TokenizationResult:
        input_ids = [CLS_TOKEN_ID, *token_ids, SEP_TOKEN_ID]

        if len(input_ids) > self.max_sequence_length:
            input_ids = input_ids[: self.max_sequence_length - 1]
            input_ids.append(SEP_TOKEN_ID)

        attended = len(input_ids)
        # Always advances to the following multiple of 8, capped at the max length
        target_length = min(attended + (PAD_MULTIPLE - attended % PAD_MULTIPLE), self.max_sequence_length)
        input_ids.extend([PAD_TOKEN_ID] * (target_length - attended))

        attention_mask = [1] * attended + [0] * (len(input_ids) - attended)
        return TokenizationResult(input_ids=input_ids, attention_mask=attention_mask)
