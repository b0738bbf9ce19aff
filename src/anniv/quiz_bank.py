"""Built-in anniversary question set and its wire encoding.

Served by the development backend and used as the offline fallback set when
demo fallback is switched on.
"""

from .models import Option, Question, QuizData

TEXT_MARKER = "[填空]"

ANNIVERSARY_QUIZ = QuizData(
    quiz_code="ANNIV25QZ-0001",
    title="2025周年探索问答",
    questions=(
        Question(
            id=1,
            idx_no=1,
            content="如果你是一颗星星，你希望自己属于哪个星座？",
            options=(
                Option(id=1, idx_no=1, content="北斗七星"),
                Option(id=2, idx_no=2, content="银河系中心"),
                Option(id=3, idx_no=3, content="猎户座"),
                Option(id=4, idx_no=4, content="其他"),
            ),
        ),
        Question(
            id=2,
            idx_no=2,
            content="实验室成立于哪一天？",
            options=(
                Option(id=5, idx_no=1, content="2016年9月6日", if_correct=False),
                Option(id=6, idx_no=2, content="2017年9月6日", if_correct=True),
                Option(id=7, idx_no=3, content="2018年9月6日", if_correct=False),
                Option(id=8, idx_no=4, content="2019年9月6日", if_correct=False),
            ),
        ),
        Question(
            id=3,
            idx_no=3,
            content="实验室位于哪个城市？",
            options=(
                Option(id=9, idx_no=1, content="上海", if_correct=False),
                Option(id=10, idx_no=2, content="杭州", if_correct=True),
                Option(id=11, idx_no=3, content="南京", if_correct=False),
                Option(id=12, idx_no=4, content="深圳", if_correct=False),
            ),
        ),
        Question(
            id=4,
            idx_no=4,
            content="用一个词形容你心中的实验室",
            options=(Option(id=13, idx_no=1, content=TEXT_MARKER),),
        ),
    ),
)


def option_to_wire(option: Option) -> dict:
    data = {"id": option.id, "idxNo": option.idx_no, "content": option.content}
    if option.if_correct is not None:
        data["ifCorrect"] = option.if_correct
    return data


def quiz_to_wire(quiz: QuizData) -> dict:
    """Encode a question set in the fetch-quiz response shape."""
    return {
        "quizCode": quiz.quiz_code,
        "title": quiz.title,
        "questions": [
            {
                "id": question.id,
                "idxNo": question.idx_no,
                "content": question.content,
                "options": [option_to_wire(option) for option in question.options],
            }
            for question in quiz.questions
        ],
    }


def score_answer(quiz: QuizData, question_id: int, option_id) -> bool:
    """Whether an answer is correct; unscored questions always count as correct."""
    question = quiz.find_question(question_id)
    if question is None:
        return False
    correct = question.correct_option()
    if correct is None:
        return True
    return correct.id == option_id
