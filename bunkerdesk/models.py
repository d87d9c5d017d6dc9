from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Float, ForeignKey, Table, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from bunkerdesk.database import Base
from sqlalchemy import Index, UniqueConstraint, JSON


def isoformat_utc(value):
    return value.isoformat() + "Z" if value else None


# Association table for many-to-many User ↔ Role
user_roles = Table(
    'user_roles',
    Base.metadata,
    Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE')),
    Column('role_id', Integer, ForeignKey('roles.id', ondelete='CASCADE')),
)


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True)
    email = Column(String(120), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    full_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    roles = relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")

    def __repr__(self):
        return f"<User {self.email}>"


class Role(Base):
    __tablename__ = 'roles'
    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)

    users = relationship("User", secondary=user_roles, back_populates="roles")

    def __repr__(self):
        return f"<Role {self.name}>"


class Contact(Base):
    __tablename__ = 'contacts'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    name = Column(String(200), nullable=False, index=True)
    phone = Column(String(40))
    phone_type = Column(String(20))
    email = Column(String(120), index=True)
    company = Column(String(200), index=True)
    company_size = Column(String(20))
    company_excerpt = Column(Text)
    website = Column(String(255))
    address = Column(String(255))
    country = Column(String(100), index=True)
    timezone = Column(String(64))
    city = Column(String(100))
    post_code = Column(String(20))
    reminder_days = Column(Integer, nullable=True)
    notes = Column(Text)

    # Relationship status flags
    is_client = Column(Boolean, default=False, nullable=False)
    has_traction = Column(Boolean, default=False, nullable=False)
    is_jammed = Column(Boolean, default=False, nullable=False)
    is_dead = Column(Boolean, default=False, nullable=False)
    jammed_reason = Column(String(255), nullable=True)
    priority_rank = Column(Integer, nullable=True, index=True)  # 0-5

    # Denormalized from calls/emails on every write
    last_called = Column(DateTime, nullable=True)
    last_emailed = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    persons = relationship("ContactPerson", back_populates="contact", cascade="all, delete-orphan",
                           order_by="ContactPerson.id")
    vessels = relationship("Vessel", back_populates="contact", cascade="all, delete-orphan")
    calls = relationship("Call", back_populates="contact", cascade="all, delete-orphan",
                         order_by="desc(Call.call_date)")
    emails = relationship("Email", back_populates="contact", cascade="all, delete-orphan",
                          order_by="desc(Email.email_date)")
    fuel_deals = relationship("FuelDeal", back_populates="contact", cascade="all, delete-orphan",
                              order_by="desc(FuelDeal.deal_date)")
    tasks = relationship("Task", back_populates="contact", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_contacts_user_name', 'user_id', 'name'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "phone_type": self.phone_type,
            "email": self.email,
            "company": self.company,
            "company_size": self.company_size,
            "company_excerpt": self.company_excerpt,
            "website": self.website,
            "address": self.address,
            "country": self.country,
            "timezone": self.timezone,
            "city": self.city,
            "post_code": self.post_code,
            "reminder_days": self.reminder_days,
            "notes": self.notes,
            "is_client": self.is_client,
            "has_traction": self.has_traction,
            "is_jammed": self.is_jammed,
            "is_dead": self.is_dead,
            "jammed_reason": self.jammed_reason,
            "priority_rank": self.priority_rank,
            "last_called": isoformat_utc(self.last_called),
            "last_emailed": isoformat_utc(self.last_emailed),
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }

    def __repr__(self):
        return f"<Contact {self.name}>"


class ContactPerson(Base):
    __tablename__ = 'contact_persons'

    id = Column(Integer, primary_key=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    job_title = Column(String(100))
    phone = Column(String(40))
    phone_type = Column(String(20))
    mobile = Column(String(40))
    mobile_type = Column(String(20))
    email = Column(String(120))
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    contact = relationship("Contact", back_populates="persons")

    def to_dict(self):
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "name": self.name,
            "job_title": self.job_title,
            "phone": self.phone,
            "phone_type": self.phone_type,
            "mobile": self.mobile,
            "mobile_type": self.mobile_type,
            "email": self.email,
            "is_primary": self.is_primary,
        }


class Vessel(Base):
    __tablename__ = 'vessels'

    id = Column(Integer, primary_key=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False, index=True)
    vessel_name = Column(String(150), nullable=False)
    imo_number = Column(String(20))
    vessel_type = Column(String(100))
    marine_traffic_url = Column(String(500))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    contact = relationship("Contact", back_populates="vessels")

    def to_dict(self):
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "vessel_name": self.vessel_name,
            "imo_number": self.imo_number,
            "vessel_type": self.vessel_type,
            "marine_traffic_url": self.marine_traffic_url,
            "notes": self.notes,
            "created_at": isoformat_utc(self.created_at),
        }


class Call(Base):
    __tablename__ = 'calls'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False, index=True)
    call_date = Column(DateTime, nullable=False, index=True)
    duration = Column(Integer, nullable=True)  # minutes
    spoke_with = Column(String(100))
    phone_number = Column(String(40))
    communication_type = Column(String(20), default="phone")
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    contact = relationship("Contact", back_populates="calls")

    def to_dict(self):
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "call_date": isoformat_utc(self.call_date),
            "duration": self.duration,
            "spoke_with": self.spoke_with,
            "phone_number": self.phone_number,
            "communication_type": self.communication_type,
            "notes": self.notes,
            "created_at": isoformat_utc(self.created_at),
        }


class Email(Base):
    __tablename__ = 'emails'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False, index=True)
    email_date = Column(DateTime, nullable=False, index=True)
    subject = Column(String(255))
    emailed_to = Column(String(100))
    email_address = Column(String(120))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    contact = relationship("Contact", back_populates="emails")

    def to_dict(self):
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "email_date": isoformat_utc(self.email_date),
            "subject": self.subject,
            "emailed_to": self.emailed_to,
            "email_address": self.email_address,
            "notes": self.notes,
            "created_at": isoformat_utc(self.created_at),
        }


class FuelDeal(Base):
    __tablename__ = 'fuel_deals'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False, index=True)
    vessel_id = Column(Integer, ForeignKey('vessels.id', ondelete='SET NULL'), nullable=True)
    vessel_name = Column(String(150), nullable=False)
    fuel_quantity = Column(Float, nullable=False)  # metric tonnes
    fuel_type = Column(String(100), nullable=False)
    deal_date = Column(DateTime, nullable=False, index=True)
    port = Column(String(100), nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    contact = relationship("Contact", back_populates="fuel_deals")
    vessel = relationship("Vessel")

    def to_dict(self):
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "vessel_id": self.vessel_id,
            "vessel_name": self.vessel_name,
            "fuel_quantity": self.fuel_quantity,
            "fuel_type": self.fuel_type,
            "deal_date": isoformat_utc(self.deal_date),
            "port": self.port,
            "notes": self.notes,
            "created_at": isoformat_utc(self.created_at),
        }


class Supplier(Base):
    __tablename__ = 'suppliers'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    company_name = Column(String(200), nullable=False, index=True)
    contact_person = Column(String(100))
    email = Column(String(120))
    general_email = Column(String(120))
    phone = Column(String(40))
    website = Column(String(255))
    address = Column(String(255))
    country = Column(String(100))
    supplier_type = Column(String(100))
    products_services = Column(Text)
    payment_terms = Column(String(100))
    currency = Column(String(3))
    ports = Column(Text)        # "Singapore; Rotterdam"
    fuel_types = Column(Text)   # "VLSFO; LSMGO"
    default_has_barge = Column(Boolean, default=False, nullable=False)
    default_has_truck = Column(Boolean, default=False, nullable=False)
    default_has_expipe = Column(Boolean, default=False, nullable=False)
    notes = Column(Text)
    rating = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contacts = relationship("SupplierContact", back_populates="supplier", cascade="all, delete-orphan",
                            order_by="SupplierContact.display_order")
    orders = relationship("SupplierOrder", back_populates="supplier", cascade="all, delete-orphan",
                          order_by="desc(SupplierOrder.order_date)")
    port_details = relationship("SupplierPort", back_populates="supplier", cascade="all, delete-orphan",
                                order_by="SupplierPort.port_name")
    tasks = relationship("Task", back_populates="supplier", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "company_name": self.company_name,
            "contact_person": self.contact_person,
            "email": self.email,
            "general_email": self.general_email,
            "phone": self.phone,
            "website": self.website,
            "address": self.address,
            "country": self.country,
            "supplier_type": self.supplier_type,
            "products_services": self.products_services,
            "payment_terms": self.payment_terms,
            "currency": self.currency,
            "ports": self.ports,
            "fuel_types": self.fuel_types,
            "default_has_barge": self.default_has_barge,
            "default_has_truck": self.default_has_truck,
            "default_has_expipe": self.default_has_expipe,
            "notes": self.notes,
            "rating": self.rating,
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }

    def __repr__(self):
        return f"<Supplier {self.company_name}>"


class SupplierContact(Base):
    __tablename__ = 'supplier_contacts'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    title = Column(String(100))
    email = Column(String(120))
    phone = Column(String(40))
    phone_type = Column(String(20))
    mobile = Column(String(40))
    mobile_type = Column(String(20))
    notes = Column(Text)
    is_primary = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    supplier = relationship("Supplier", back_populates="contacts")

    def to_dict(self):
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "name": self.name,
            "title": self.title,
            "email": self.email,
            "phone": self.phone,
            "phone_type": self.phone_type,
            "mobile": self.mobile,
            "mobile_type": self.mobile_type,
            "notes": self.notes,
            "is_primary": self.is_primary,
            "display_order": self.display_order,
        }


class SupplierOrder(Base):
    __tablename__ = 'supplier_orders'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False, index=True)
    order_number = Column(String(100))
    order_date = Column(DateTime, nullable=False)
    delivery_date = Column(DateTime, nullable=True)
    total_amount = Column(Float, nullable=True)
    currency = Column(String(3))
    status = Column(String(20), default="pending", nullable=False)
    items = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    supplier = relationship("Supplier", back_populates="orders")

    def to_dict(self):
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "order_number": self.order_number,
            "order_date": isoformat_utc(self.order_date),
            "delivery_date": isoformat_utc(self.delivery_date),
            "total_amount": self.total_amount,
            "currency": self.currency,
            "status": self.status,
            "items": self.items,
            "notes": self.notes,
        }


class SupplierPort(Base):
    __tablename__ = 'supplier_ports'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False, index=True)
    port_name = Column(String(100), nullable=False)

    # Delivery methods
    has_barge = Column(Boolean, default=False, nullable=False)
    has_truck = Column(Boolean, default=False, nullable=False)
    has_expipe = Column(Boolean, default=False, nullable=False)
    custom_delivery_methods = Column(JSON, default=list, nullable=False)

    # Fuel capability
    has_vlsfo = Column(Boolean, default=False, nullable=False)
    has_lsmgo = Column(Boolean, default=False, nullable=False)
    custom_fuel_types = Column(JSON, default=list, nullable=False)

    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    supplier = relationship("Supplier", back_populates="port_details")

    def to_dict(self):
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "port_name": self.port_name,
            "has_barge": self.has_barge,
            "has_truck": self.has_truck,
            "has_expipe": self.has_expipe,
            "custom_delivery_methods": self.custom_delivery_methods or [],
            "has_vlsfo": self.has_vlsfo,
            "has_lsmgo": self.has_lsmgo,
            "custom_fuel_types": self.custom_fuel_types or [],
            "notes": self.notes,
            "created_at": isoformat_utc(self.created_at),
        }


class Task(Base):
    __tablename__ = 'tasks'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='CASCADE'), nullable=True, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=True, index=True)
    task_type = Column(String(20), nullable=False, default="other")
    title = Column(String(255), nullable=False)
    notes = Column(Text)
    due_date = Column(DateTime, nullable=True, index=True)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contact = relationship("Contact", back_populates="tasks")
    supplier = relationship("Supplier", back_populates="tasks")

    def to_dict(self):
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "supplier_id": self.supplier_id,
            "contact_name": self.contact.name if self.contact else None,
            "supplier_name": self.supplier.company_name if self.supplier else None,
            "task_type": self.task_type,
            "title": self.title,
            "notes": self.notes,
            "due_date": isoformat_utc(self.due_date),
            "completed": self.completed,
            "completed_at": isoformat_utc(self.completed_at),
            "created_at": isoformat_utc(self.created_at),
        }

    def __repr__(self):
        return f"<Task {self.title}>"


class DailyGoal(Base):
    __tablename__ = 'daily_goals'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    goal_type = Column(String(10), nullable=False)  # calls | emails | deals
    target_amount = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=True)   # "HH:MM"
    target_time = Column(String(5), nullable=False)  # "HH:MM"
    target_date = Column(Date, nullable=False, index=True)
    manual_count = Column(Integer, default=0, nullable=False)
    notes = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    schedule = relationship("CallSchedule", back_populates="goal", cascade="all, delete-orphan",
                            order_by="CallSchedule.display_order")

    def to_dict(self):
        return {
            "id": self.id,
            "goal_type": self.goal_type,
            "target_amount": self.target_amount,
            "start_time": self.start_time,
            "target_time": self.target_time,
            "target_date": self.target_date.isoformat() if self.target_date else None,
            "manual_count": self.manual_count,
            "notes": self.notes,
            "is_active": self.is_active,
            "completed_at": isoformat_utc(self.completed_at),
            "created_at": isoformat_utc(self.created_at),
        }

    def __repr__(self):
        return f"<DailyGoal {self.goal_type} {self.target_amount} on {self.target_date}>"


class GoalNotificationSettings(Base):
    __tablename__ = 'goal_notification_settings'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    notification_frequency = Column(Integer, default=30, nullable=False)  # minutes
    enable_notifications = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "notification_frequency": self.notification_frequency,
            "enable_notifications": self.enable_notifications,
        }


class CallSchedule(Base):
    __tablename__ = 'call_schedules'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    goal_id = Column(Integer, ForeignKey('daily_goals.id', ondelete='CASCADE'), nullable=False, index=True)
    scheduled_time = Column(DateTime, nullable=False)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='SET NULL'), nullable=True)
    contact_name = Column(String(200), nullable=False)
    priority_label = Column(String(20), nullable=False, default="Cold")
    contact_status = Column(String(20), nullable=False, default="none")
    is_suggested = Column(Boolean, default=False, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    call_duration_mins = Column(Integer, nullable=False, default=10)
    timezone_label = Column(String(100))
    notes = Column(Text)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    goal = relationship("DailyGoal", back_populates="schedule")

    __table_args__ = (
        Index('idx_call_schedules_goal_order', 'goal_id', 'display_order'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "goal_id": self.goal_id,
            "scheduled_time": isoformat_utc(self.scheduled_time),
            "contact_id": self.contact_id,
            "contact_name": self.contact_name,
            "priority_label": self.priority_label,
            "contact_status": self.contact_status,
            "is_suggested": self.is_suggested,
            "completed": self.completed,
            "completed_at": isoformat_utc(self.completed_at),
            "call_duration_mins": self.call_duration_mins,
            "timezone_label": self.timezone_label,
            "notes": self.notes,
            "display_order": self.display_order,
        }


class SavedNote(Base):
    __tablename__ = 'saved_notes'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey('contacts.id', ondelete='SET NULL'), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", foreign_keys=[user_id])
    contact = relationship("Contact")
    shares = relationship("NoteShare", back_populates="note", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "contact_id": self.contact_id,
            "contact_name": self.contact.name if self.contact else None,
            "title": self.title,
            "content": self.content,
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }


class NoteShare(Base):
    __tablename__ = 'note_shares'

    id = Column(Integer, primary_key=True)
    note_id = Column(Integer, ForeignKey('saved_notes.id', ondelete='CASCADE'), nullable=False, index=True)
    shared_by = Column(Integer, ForeignKey('users.id'), nullable=False)
    shared_with = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    can_edit = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    note = relationship("SavedNote", back_populates="shares")
    recipient = relationship("User", foreign_keys=[shared_with])

    __table_args__ = (
        UniqueConstraint('note_id', 'shared_with', name='uq_note_share_recipient'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "note_id": self.note_id,
            "shared_with": self.shared_with,
            "shared_with_email": self.recipient.email if self.recipient else "Unknown user",
            "can_edit": self.can_edit,
            "created_at": isoformat_utc(self.created_at),
        }


class NotificationSettings(Base):
    """Call reminder digest settings (one row per user)."""
    __tablename__ = 'notification_settings'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    user_email = Column(String(120), nullable=False)
    days_before_reminder = Column(Integer, default=1, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    last_check = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "user_email": self.user_email,
            "days_before_reminder": self.days_before_reminder,
            "enabled": self.enabled,
            "last_check": isoformat_utc(self.last_check),
        }


class UserPreference(Base):
    __tablename__ = 'user_preferences'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)
    preference_key = Column(String(100), nullable=False, index=True)
    preference_value = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", backref="preferences")

    # Constraints
    __table_args__ = (
        Index('idx_user_preferences_lookup', 'user_id', 'category', 'preference_key'),
        UniqueConstraint('user_id', 'category', 'preference_key', name='uq_user_category_key'),
    )

    def __repr__(self):
        return f"<UserPreference user_id={self.user_id} {self.category}.{self.preference_key}>"


class Workspace(Base):
    __tablename__ = 'workspaces'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False, default="#3B82F6")
    is_default = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("WorkspaceMember", back_populates="workspace", cascade="all, delete-orphan")
    groups = relationship("ContactGroup", back_populates="workspace", cascade="all, delete-orphan")

    def to_dict(self, role="owner"):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "color": self.color,
            "is_default": self.is_default,
            "display_order": self.display_order,
            "role": role,
            "created_at": isoformat_utc(self.created_at),
        }


class WorkspaceMember(Base):
    """Another user given access to a workspace; the owner is implicit."""
    __tablename__ = 'workspace_members'
    __table_args__ = (
        UniqueConstraint('workspace_id', 'user_id', name='uq_workspace_member'),
    )

    id = Column(Integer, primary_key=True)
    workspace_id = Column(Integer, ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    added_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    role = Column(String(20), nullable=False, default="member")  # admin, member
    created_at = Column(DateTime, default=datetime.utcnow)

    workspace = relationship("Workspace", back_populates="members")
    user = relationship("User", foreign_keys=[user_id], lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "user_id": self.user_id,
            "email": self.user.email if self.user else None,
            "role": self.role,
            "added_by": self.added_by,
            "created_at": isoformat_utc(self.created_at),
        }


contact_group_members = Table(
    'contact_group_members',
    Base.metadata,
    Column('group_id', Integer, ForeignKey('contact_groups.id', ondelete='CASCADE'), primary_key=True),
    Column('contact_id', Integer, ForeignKey('contacts.id', ondelete='CASCADE'), primary_key=True),
)


class ContactGroup(Base):
    __tablename__ = 'contact_groups'

    id = Column(Integer, primary_key=True)
    workspace_id = Column(Integer, ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False, default="#3B82F6")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    workspace = relationship("Workspace", back_populates="groups")
    contacts = relationship("Contact", secondary=contact_group_members, lazy="selectin")

    def to_dict(self):
        contact_ids = sorted(c.id for c in self.contacts)
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "color": self.color,
            "contact_ids": contact_ids,
            "member_count": len(contact_ids),
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }
