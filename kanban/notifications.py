import queue
import smtplib
import threading

from datetime import datetime, timedelta, timezone
from email.message import EmailMessage

from flask import Flask, current_app

from kanban.extensions import db


class Mailer:
    """Delivers messages over SMTP. Without a server it only logs."""

    def __init__(self, server: str = None, port: int = 587,
                 use_tls: bool = True, username: str = None,
                 password: str = None, logger=None):
        self.server = server
        self.port = port
        self.use_tls = use_tls
        self.username = username
        self.password = password
        self.logger = logger

    @classmethod
    def from_config(cls, app: Flask):
        return cls(
            server=app.config.get('MAIL_SERVER'),
            port=int(app.config.get('MAIL_PORT', 587)),
            use_tls=bool(app.config.get('MAIL_USE_TLS', True)),
            username=app.config.get('MAIL_USERNAME'),
            password=app.config.get('MAIL_PASSWORD'),
            logger=app.logger,
        )

    def send(self, msg: EmailMessage):
        if not self.server:
            self.logger.info(f"mail disabled, dropping '{msg['Subject']}' "
                             f"to {msg['To']}")
            return
        with smtplib.SMTP(self.server, self.port, timeout=10) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)


def start_worker(app: Flask, mailer) -> queue.Queue:
    mail_queue = queue.Queue()

    def mail_sender():
        with app.app_context():
            app.logger.info("mail sender thread started")
            while True:
                msg = mail_queue.get()
                try:
                    mailer.send(msg)
                    app.logger.info(f"mail '{msg['Subject']}' sent to "
                                    f"{msg['To']}")
                except BaseException as e:
                    app.logger.error(f"mail to {msg['To']} failed: {e}")
                finally:
                    mail_queue.task_done()

    sender_thread = threading.Thread(target=mail_sender)
    sender_thread.daemon = True
    sender_thread.start()
    return mail_queue


def _wants(user, kind: str = None) -> bool:
    prefs = user.preferences.get('notifications', {})
    if not prefs.get('email', True):
        return False
    return kind is None or prefs.get(kind, True)


def _board_url(board) -> str:
    return f"{current_app.config['FRONTEND_URL']}/board/{board.id}"


def dispatch(to: str, subject: str, body: str):
    msg = EmailMessage()
    msg['Subject'] = subject
    msg['From'] = current_app.config['MAIL_FROM']
    msg['To'] = to
    msg.set_content(body)
    current_app.extensions['mail_queue'].put(msg)


def welcome(user):
    dispatch(
        user.email,
        "Welcome to Kanban",
        f"Hello {user.first_name},\n\n"
        "Your account is ready. Create a board and invite your team to "
        "start collaborating.\n",
    )


def card_assignment(user, card, board, assigned_by):
    if not _wants(user, 'cardAssignments'):
        return
    dispatch(
        user.email,
        f'You\'ve been assigned to "{card.title}"',
        f"Hello {user.first_name},\n\n"
        f"{assigned_by.full_name} assigned you to \"{card.title}\" "
        f"on board {board.name}.\n\n"
        f"{card.description or ''}\n\n"
        f"View it at {_board_url(board)}\n",
    )


def board_invitation(user, board, invited_by):
    if not _wants(user, 'boardUpdates'):
        return
    dispatch(
        user.email,
        f'You\'ve been invited to "{board.name}"',
        f"Hello {user.first_name},\n\n"
        f"{invited_by.full_name} added you to the board {board.name}.\n\n"
        f"Open it at {_board_url(board)}\n",
    )


def due_date_reminder(user, card, board) -> bool:
    if not _wants(user):
        return False
    due = card.due_date.strftime('%Y-%m-%d')
    dispatch(
        user.email,
        f'Reminder: "{card.title}" is due soon',
        f"Hello {user.first_name},\n\n"
        f"\"{card.title}\" on board {board.name} is due on {due}.\n\n"
        f"View it at {_board_url(board)}\n",
    )
    return True


def send_due_date_reminders(now: datetime = None) -> int:
    """Queue a reminder to every assignee of a card due tomorrow."""
    from kanban.models.assignment import AssignmentRole, CardAssignment
    from kanban.models.card import Card

    now = now or datetime.now(timezone.utc)
    start = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0,
                                              microsecond=0)
    end = start + timedelta(days=1)

    assignments = db.session.execute(
        db.select(CardAssignment)
        .join(Card, CardAssignment.card_id == Card.id)
        .filter(Card.due_date >= start, Card.due_date < end,
                Card.is_completed.is_(False), Card.is_archived.is_(False),
                CardAssignment.role == AssignmentRole.ASSIGNEE)).scalars()

    count = 0
    for assignment in assignments:
        card = assignment.card
        if due_date_reminder(assignment.user, card, card.column.board):
            count += 1
    current_app.logger.info(f"queued {count} due date reminders")
    return count
