"""Chat Session: ephemeral Q&A transcript about one recipe.

Each question is answered in a single turn from the recipe text alone; earlier
messages are shown to the user but not sent to the model. Nothing is persisted.
"""

from typing import Optional

from smartchef.gateway.gateway import GenerationGateway
from smartchef.models.models import ChatMessage, Recipe
from smartchef.utils.errors import ChatBusy, GenerationFailure, ValidationFailure
from smartchef.utils.logger import logger


ERROR_REPLY = "Sorry, I encountered an error. Please try again."


def serialize_recipe(recipe: Recipe) -> str:
    """Render the recipe text fields the way the Q&A prompt expects them."""
    return (
        f"Title: {recipe.title}\n"
        f"Ingredients: {', '.join(recipe.ingredients)}\n"
        f"Instructions: {' '.join(recipe.instructions)}"
    )


class ChatSession:
    """Single-flight question/answer loop bound to the displayed recipe."""

    def __init__(self, gateway: GenerationGateway, recipe: Optional[Recipe] = None) -> None:
        self.gateway = gateway
        self.recipe = recipe
        self.messages: list[ChatMessage] = []
        # Transcript of the question being answered, if any
        self._answering: Optional[list[ChatMessage]] = None

    @property
    def busy(self) -> bool:
        """True while a question about the current recipe awaits its answer."""
        return self._answering is not None and self._answering is self.messages

    def reset(self, recipe: Optional[Recipe]) -> None:
        """Switch context.

        A different recipe gets a fresh transcript, which also releases the busy
        state: an answer still pending for the old recipe is dropped on arrival.
        """
        if recipe is not None and self.recipe is not None and recipe.id == self.recipe.id:
            self.recipe = recipe
            return
        self.recipe = recipe
        self.messages = []

    async def ask(self, question: str) -> str:
        """Ask one question about the current recipe.

        A provider failure does not raise: the transcript gets an apology
        reply, which is also returned.

        Raises:
            ValidationFailure: If the question is blank or there is no recipe.
            ChatBusy: If another question is still being answered.
        """
        if self.busy:
            raise ChatBusy()
        if not question or not question.strip():
            raise ValidationFailure("question", "must not be empty")
        if self.recipe is None:
            raise ValidationFailure("recipe", "no recipe selected for the chat")

        context = self.recipe
        transcript = self.messages
        self._answering = transcript
        try:
            transcript.append(ChatMessage(sender="user", text=question.strip()))
            try:
                answer = await self.gateway.answer_question(serialize_recipe(context), question)
            except GenerationFailure as e:
                logger.warning(f"Chat answer failed: {e.message}", extra={"recipe_id": context.id})
                answer = ERROR_REPLY
            transcript.append(ChatMessage(sender="bot", text=answer))
            return answer
        finally:
            if self._answering is transcript:
                self._answering = None
