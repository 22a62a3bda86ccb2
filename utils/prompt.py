class PromptService:
    @staticmethod
    def get_quiz_generate_prompt(limit: int, options: int = 4) -> str:
        return f"""Your task is to generate multiple choice questions from the given document text.
Use ONLY the information in the given text. Do not use outside knowledge.
Generate exactly {limit} questions.
Every question must have exactly {options} options and exactly one correct option.
correct_answer is the zero-based index of the correct option.
Each explanation must say briefly why the correct option is right.
Cover the whole text, avoid repeating the same fact twice.
Output should be following the given response_schema. Do not add any prose outside the JSON.
"""

    @staticmethod
    def get_quiz_user_prompt(text: str) -> str:
        return f"""Document text:
{text}
"""
