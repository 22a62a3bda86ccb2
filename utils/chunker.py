import re
from typing import List


class DocumentChunker:
    """
    Cuts text on sentence boundaries to a target word count. Used to bound
    the amount of document text sent to the model.
    """

    # Define common sentence terminators for robust splitting
    SENTENCE_TERMINATORS = r"(?<=[.!?])\s+"

    def __init__(self, target_words: int = 6000):
        self.target_words = max(1, target_words)

    def _split_into_sentences(self, text: str) -> List[str]:
        """Splits text into sentences, keeping the terminator punctuation."""
        if not text:
            return []
        return [
            s.strip() for s in re.split(self.SENTENCE_TERMINATORS, text) if s.strip()
        ]

    def _count_words(self, text: str) -> int:
        return len(text.split())

    def _cut_words(self, sentence: str) -> str:
        return " ".join(sentence.split()[: self.target_words])

    def leading_chunk(self, text: str) -> str:
        """Returns the opening sentences of the text that fit the word limit.

        A first sentence longer than the limit is cut at the word limit.
        """
        if self._count_words(text) <= self.target_words:
            return text

        sentences = self._split_into_sentences(text)
        if not sentences:
            return ""

        chunk = []
        word_count = 0
        for sentence in sentences:
            sentence_words = self._count_words(sentence)
            if word_count + sentence_words > self.target_words:
                break
            chunk.append(sentence)
            word_count += sentence_words

        if not chunk:
            return self._cut_words(sentences[0])
        return " ".join(chunk)
