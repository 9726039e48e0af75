"""
sirb/messages.py
User-facing (Arabic) messages returned in error and result payloads.
"""

# Generic
UNAUTHORIZED = "يجب تسجيل الدخول أولاً"
FORBIDDEN = "غير مصرح لك بتنفيذ هذا الإجراء"
NOT_FOUND = "العنصر غير موجود"
INTERNAL_ERROR = "حدث خطأ غير متوقع، يرجى المحاولة لاحقاً"
INVALID_INPUT = "بيانات غير صالحة"
RATE_LIMITED = "طلبات كثيرة، يرجى المحاولة لاحقاً"

# Taxonomy lookups
SUBJECT_NOT_FOUND = "المادة غير موجودة"
CHAPTER_NOT_FOUND = "الفصل غير موجود"
USER_NOT_FOUND = "المستخدم غير موجود"

# Content lifecycle
QUIZ_NOT_FOUND = "الاختبار غير موجود"
CANVAS_NOT_FOUND = "المحتوى غير موجود"
NOT_CONTENT_OWNER = "لا يمكنك تعديل محتوى لا تملكه"
NOT_MODERATOR = "لست مشرفاً على هذه المادة"
QUIZ_NEEDS_QUESTION = "يجب أن يحتوي الاختبار على سؤال واحد على الأقل قبل الإرسال"
CANNOT_SUBMIT = "لا يمكن إرسال المحتوى في حالته الحالية"
NOT_PENDING = "المحتوى ليس قيد المراجعة"
ALREADY_PROCESSED = "تمت مراجعة هذا المحتوى مسبقاً"
APPROVED_IS_LOCKED = "لا يمكن تعديل محتوى معتمد"
REJECTION_REASON_REQUIRED = "يجب ذكر سبب الرفض بين 5 و1000 حرف"

# Questions
QUESTION_NOT_FOUND = "السؤال غير موجود"
INVALID_CORRECT_OPTIONS = "عدد الإجابات الصحيحة لا يتوافق مع نوع السؤال"
TRUE_FALSE_OPTION_COUNT = "سؤال صح أو خطأ يحتاج إلى خيارين فقط"
TRUE_LABEL = "صح"
FALSE_LABEL = "خطأ"

# Reordering
ITEMS_NOT_FOUND = "عنصر أو أكثر غير موجود"
ITEMS_WRONG_PARENT = "عنصر أو أكثر لا ينتمي إلى هذا القسم"
DUPLICATE_REORDER_ENTRY = "لا يمكن تكرار العنصر أو الترتيب"
INVALID_SEQUENCE = "قيمة الترتيب غير صالحة"
SEQUENCE_CONFLICT = "تعارض في ترتيب العناصر"

# Votes
CANNOT_VOTE_OWN = "لا يمكنك التصويت على محتواك"
VOTE_CONFLICT = "تم تسجيل تصويتك بالفعل، يرجى المحاولة مرة أخرى"

# Comments
COMMENT_NOT_FOUND = "التعليق غير موجود"
INVALID_COMMENT_LENGTH = "طول التعليق غير صالح"
INVALID_COMMENT_CURSOR = "مؤشر الصفحة غير صالح"
INVALID_PARENT_COMMENT = "لا يمكن الرد على هذا التعليق"
COMMENT_RATE_LIMITED = "يرجى الانتظار قبل إضافة تعليق آخر"
DELETED_COMMENT_TEXT = "[تم حذف هذا التعليق]"

# Reports
ALREADY_REPORTED = "تم الإبلاغ مسبقاً"
REPORT_RATE_LIMITED = "يرجى الانتظار قبل إرسال بلاغ آخر"
REPORT_NOT_FOUND = "البلاغ غير موجود"
REPORT_ALREADY_RESOLVED = "تمت معالجة هذا البلاغ مسبقاً"
DESCRIPTION_TOO_LONG = "الوصف طويل جداً"

# Moderators
ALREADY_MODERATOR = "المستخدم مشرف بالفعل على هذه المادة"
USER_BANNED = "لا يمكن تعيين مستخدم محظور"

# Quiz attempts
QUIZ_NOT_AVAILABLE = "الاختبار غير متاح"
QUIZ_HAS_NO_QUESTIONS = "لا يحتوي الاختبار على أسئلة"
ATTEMPT_NOT_FOUND = "المحاولة غير موجودة"
ATTEMPT_COMPLETED = "تم إنهاء هذه المحاولة مسبقاً"
OPTIONS_NOT_IN_QUESTION = "خيار أو أكثر لا ينتمي إلى هذا السؤال"

# Uploads
UPLOAD_RATE_LIMITED = "تجاوزت الحد المسموح من عمليات الرفع، حاول بعد دقيقة"
FILE_TYPE_NOT_ALLOWED = "نوع الملف غير مسموح"
FILE_TOO_LARGE = "حجم الملف يجب أن يكون أقل من 10 ميغابايت"
