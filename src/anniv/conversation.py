"""Text front end that maps chat input onto a CertificateWizard."""

from pathlib import Path

from .models import Error, ShowingHint, WizardStep
from .state_machine import CertificateWizard


class WizardConversation:
    """Renders wizard prompts as text and interprets replies per step."""

    FORM_FIELDS = (
        ("name", "请输入姓名："),
        ("employee_id", "请输入工号："),
        ("join_date", "请输入入职时间（YYYY-MM-DD）："),
    )

    def __init__(self, wizard: CertificateWizard, download_dir: Path):
        self.wizard = wizard
        self.download_dir = Path(download_dir)
        self._form_field = 0

    def get_welcome_message(self) -> str:
        return """\
=== 探索宇宙的钥匙 ===

回答几个问题，解锁属于你的星际祝福。

输入 start 点击探秘："""

    async def process_input(self, message: str) -> str:
        """Process visitor input based on the current wizard step."""
        message = message.strip()
        command = message.lower()

        if command == "restart":
            self.wizard.restart()
            self._form_field = 0
            return self.get_welcome_message()
        if command == "ok" and isinstance(self.wizard.status, ShowingHint):
            self.wizard.dismiss_hint()
            return self._render_current()

        match self.wizard.step:
            case WizardStep.HERO:
                return await self._handle_hero(command)
            case WizardStep.QUIZ:
                return await self._handle_quiz(message)
            case WizardStep.WISHES:
                return await self._handle_wishes(message)
            case WizardStep.FORM:
                return await self._handle_form(message)
            case WizardStep.LOADING:
                return await self._handle_loading(command)
            case WizardStep.RESULT:
                return await self._handle_result(command)
            case _:
                return "Session error. Please reconnect."

    def _with_error(self, text: str) -> str:
        error = self.wizard.error
        if error:
            return f"[ERROR: {error}]\n\n{text}"
        return text

    def _render_current(self) -> str:
        match self.wizard.step:
            case WizardStep.HERO:
                return self.get_welcome_message()
            case WizardStep.QUIZ:
                return self._render_quiz()
            case WizardStep.WISHES:
                return self._with_error("写下你对实验室的祝福：")
            case WizardStep.FORM:
                return self._with_error(self.FORM_FIELDS[self._form_field][1])
            case WizardStep.LOADING:
                return self._render_loading()
            case _:
                return self._render_result()

    async def _handle_hero(self, command: str) -> str:
        if command not in {"start", "explore", "点击探秘"}:
            return self.get_welcome_message()
        await self.wizard.explore()
        return self._render_quiz()

    def _render_quiz(self) -> str:
        session = self.wizard.session
        question = session.current_question
        if question is None:
            return self._with_error("加载失败，输入 retry 重试：")

        lines = [
            f"问题 {session.current_question_index + 1} / 共 {len(session.questions)} 题",
            "",
            question.content,
            "",
        ]
        if question.is_text_input(self.wizard.marker):
            lines.append("请直接输入你的回答：")
        else:
            for option in question.options:
                mark = "*" if session.selected_answers.get(question.id) == option.id else " "
                lines.append(f"{mark} {option.label}. {option.content}")
            lines.append("")
            lines.append("输入选项字母作答，prev 返回上一题：")
        return self._with_error("\n".join(lines))

    async def _handle_quiz(self, message: str) -> str:
        session = self.wizard.session
        if session.quiz is None:
            if message.lower() == "retry":
                await self.wizard.retry_fetch()
            return self._render_quiz()
        if message.lower() == "prev":
            self.wizard.previous_question()
            return self._render_quiz()
        if message.lower() == "retry":
            await self.wizard.retry()
            return self._render_current()

        question = session.current_question
        if question.is_text_input(self.wizard.marker):
            self.wizard.enter_text(question.id, message)
        else:
            option = question.find_option_by_label(message) if len(message) == 1 else None
            if option is None:
                labels = "/".join(o.label for o in question.options)
                return f"[ERROR: 请输入选项字母 {labels}]\n\n{self._render_quiz()}"
            self.wizard.select_option(question.id, option.id)

        await self.wizard.next_question()
        return self._render_current()

    async def _handle_wishes(self, message: str) -> str:
        if message.lower() != "retry":
            self.wizard.set_wishes(message)
        await self.wizard.complete_wishes()
        if self.wizard.step is WizardStep.FORM:
            self._form_field = 0
            return "点亮你的专属星图，填写以下信息。\n\n" + self.FORM_FIELDS[0][1]
        return self._render_current()

    async def _handle_form(self, message: str) -> str:
        field_name, _ = self.FORM_FIELDS[self._form_field]
        self.wizard.update_form(**{field_name: message})
        self._form_field += 1
        if self._form_field < len(self.FORM_FIELDS):
            return self.FORM_FIELDS[self._form_field][1]

        self._form_field = 0
        await self.wizard.submit_form()
        if self.wizard.step is WizardStep.FORM:
            return self._render_current()
        await self.wizard.wait_for_certificate()
        return self._render_current()

    def _render_loading(self) -> str:
        status = self.wizard.status
        if isinstance(status, Error):
            return f"[ERROR: {status.message}]\n\n证书生成失败，输入 retry 重试："
        return "您的专属宇宙证书正在生成，请稍候..."

    async def _handle_loading(self, command: str) -> str:
        if command == "retry":
            await self.wizard.retry_issuance()
        else:
            await self.wizard.wait_for_certificate()
        return self._render_current()

    def _render_result(self) -> str:
        certificate = self.wizard.certificate
        lines = [
            "=== 您的专属宇宙证书 ===",
            "",
            f"姓名：{certificate.name}",
            f"工号：{certificate.work_no}",
            f"证书编号：{certificate.full_no}",
            f"工作天数：{certificate.days_to_target} 天",
        ]
        if certificate.wishes:
            lines.append(f"祝福：{certificate.wishes}")
        lines.extend(["", "输入 download 下载证书，restart 重新开始："])
        return "\n".join(lines)

    async def _handle_result(self, command: str) -> str:
        if command == "download":
            certificate = self.wizard.certificate
            path = await self.wizard.download(self.download_dir / f"{certificate.full_no}.pdf")
            return f"证书已保存：{path}"
        return self._render_result()
