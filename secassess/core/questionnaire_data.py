"""Canonical seed questionnaires.

QUESTIONNAIRES lists (id, name, declared categories) and QUESTION_ITEMS holds
(id, assessment_name, category, text, explanation, options) with each option
as (text, score, recommendation). ``build_seed_questionnaires`` turns both
into the plain-dict form the catalog loads.

Importing this module raises if invariants break (unique ids, every question
belongs to a known questionnaire and declared category, every option score in
-2..+2, every question offers one +2 option).
"""
from __future__ import annotations
from typing import Any, Dict, List, Tuple

OptionItem = Tuple[str, int, str]
QuestionItem = Tuple[int, str, str, str, str, List[OptionItem]]

ITIVA = "Standard ITIVA Assessment"
CLOUD = "Advanced Cloud Security Check"
GDPR = "GDPR Compliance Audit"

QUESTIONNAIRES: List[Tuple[int, str, str, List[str]]] = [
    (1, ITIVA, "2024-05-01T00:00:00+00:00", [
        "Website Strength",
        "Devices & Network",
        "Compliance Documentation",
        "Cyber Security Implementations",
    ]),
    (2, CLOUD, "2024-04-10T00:00:00+00:00", [
        "Infrastructure Security",
        "Access Management",
        "Data Protection",
    ]),
    (3, GDPR, "2024-03-20T00:00:00+00:00", [
        "Data Governance",
        "Operational Compliance",
    ]),
]

QUESTION_ITEMS: List[QuestionItem] = [
    (1, ITIVA, "Website Strength",
     "Is your website traffic encrypted using a valid and current SSL/TLS certificate (HTTPS)?",
     "Checks whether data such as passwords is protected while it travels to and from your site.",
     [
         ("Yes, on all pages, with HSTS enabled", 2,
          "Maintain your TLS configuration and review it annually against current guidance."),
         ("Yes, standard certificate on all pages", 1,
          "Enable HSTS to prevent protocol downgrade attacks."),
         ("Only on sensitive pages", 0,
          "Serve every page over HTTPS; partial coverage leaves sessions exposed."),
         ("Certificate is expired or misconfigured", -1,
          "Renew or fix the certificate immediately; a broken certificate offers no protection."),
         ("No, we use HTTP only", -2,
          "Install a TLS certificate now; plaintext HTTP exposes every visitor."),
     ]),
    (2, ITIVA, "Website Strength",
     "Are all software components of your website (CMS, plugins, themes) kept up to date?",
     "Outdated components are the most common entry point for website compromise.",
     [
         ("Automated scanning with patches applied within 48 hours", 2,
          "Keep monitoring the automated patching pipeline for failures."),
         ("Manual weekly checks and updates", 1,
          "Automate patch detection to shorten the exposure window."),
         ("Sporadic updates, usually when something breaks", 0,
          "Adopt a fixed, at least weekly, patching schedule."),
         ("Only major versions, rarely", -1,
          "Introduce patch management; known vulnerabilities are almost certainly present."),
         ("We never update website components", -2,
          "Get technical help to establish patching; this is a foundational control."),
     ]),
    (3, ITIVA, "Devices & Network",
     "Do you maintain an up-to-date inventory of all devices connected to your network?",
     "You cannot protect devices you do not know about.",
     [
         ("Automated, real-time inventory of hardware and software", 2,
          "Review the inventory against network scans each quarter."),
         ("Manual inventory updated regularly", 1,
          "Automate discovery so unknown devices are flagged quickly."),
         ("Partial or outdated inventory", 0,
          "Complete the inventory and assign an owner to keep it current."),
         ("We are not sure", -1,
          "Start with a network scan to list every connected device."),
         ("No formal inventory", -2,
          "Create an asset inventory; it underpins every other network control."),
     ]),
    (4, ITIVA, "Devices & Network",
     "Is office Wi-Fi protected with a strong password and modern encryption (WPA2/WPA3)?",
     "Weak wireless security lets outsiders join the internal network.",
     [
         ("WPA3/WPA2-Enterprise with a separate guest network", 2,
          "Rotate credentials and review connected clients periodically."),
         ("WPA2/WPA3 with a strong shared password", 1,
          "Separate guest and staff networks and consider enterprise authentication."),
         ("WPA2 with a simple password", 0,
          "Replace the password with a long random passphrase."),
         ("WEP or an open network", -1,
          "Switch to WPA2 or WPA3 immediately; WEP is trivially broken."),
         ("We do not know how Wi-Fi is configured", -2,
          "Audit the wireless configuration and document it."),
     ]),
    (5, ITIVA, "Compliance Documentation",
     "Do you have a documented Information Security Policy accessible to all employees?",
     "A written policy sets expectations and is the basis of most audits.",
     [
         ("Reviewed annually, communicated and trained on", 2,
          "Keep the annual review cycle and track training completion."),
         ("Documented and available", 1,
          "Add training so staff understand the policy, not just its location."),
         ("Informal or outdated policy", 0,
          "Formalize and update the policy, then publish it to staff."),
         ("We are not sure", -1,
          "Find out whether a policy exists and who owns it."),
         ("No documented policy", -2,
          "Write an Information Security Policy; templates from national CERTs are a good start."),
     ]),
    (6, ITIVA, "Cyber Security Implementations",
     "Is multi-factor authentication required for critical systems?",
     "MFA blocks the large majority of credential-stuffing and phishing account takeovers.",
     [
         ("Mandatory for all users on all critical systems", 2,
          "Prefer phishing-resistant factors such as security keys for administrators."),
         ("Mandatory for administrators only", 1,
          "Extend MFA to every user of email and remote access."),
         ("Available but optional", 0,
          "Make MFA mandatory; optional MFA is rarely enabled."),
         ("Used on one or two non-critical applications", -1,
          "Prioritize MFA on email, VPN and administrative consoles."),
         ("Not used anywhere", -2,
          "Enable MFA on email and remote access first, then everywhere else."),
     ]),
    (7, ITIVA, "Cyber Security Implementations",
     "Is sensitive data encrypted at rest and in transit?",
     "Encryption limits the damage of a stolen disk or intercepted traffic.",
     [
         ("Encrypted at rest and in transit everywhere", 2,
          "Review key management and rotation procedures yearly."),
         ("Encrypted in transit only", 1,
          "Enable storage and database encryption for sensitive data."),
         ("Only some sensitive data is encrypted", 0,
          "Classify data and encrypt every sensitive store."),
         ("We do not know", -1,
          "Audit where sensitive data lives and how it is protected."),
         ("No encryption", -2,
          "Encrypt sensitive data at rest and enforce TLS for all transfers."),
     ]),
    (8, CLOUD, "Infrastructure Security",
     "How are access keys and credentials for cloud services managed?",
     "Leaked long-lived keys are a leading cause of cloud breaches.",
     [
         ("Dedicated secrets manager with automated rotation", 2,
          "Alert on secret access anomalies and audit rotation regularly."),
         ("Environment variables rotated manually every 90 days", 1,
          "Move secrets into a managed secrets service with automatic rotation."),
         ("Stored in configuration files, rarely rotated", 0,
          "Remove secrets from configuration and rotate all existing keys."),
         ("Hardcoded in source code", -1,
          "Purge keys from source and history, rotate them, and add secret scanning."),
         ("One long-lived key shared by all services", -2,
          "Issue per-service credentials with least privilege and rotate immediately."),
     ]),
    (9, CLOUD, "Infrastructure Security",
     "What is your network security strategy in the cloud (VPCs, security groups)?",
     "Network segmentation limits how far an attacker can move after a compromise.",
     [
         ("Multi-tier VPCs with least-privilege security groups", 2,
          "Review security group rules automatically for drift."),
         ("Single VPC with IP-restricted security groups", 1,
          "Separate tiers into subnets and tighten rules per service."),
         ("Default VPC and default security groups", 0,
          "Replace defaults with explicit, least-privilege rules."),
         ("Security groups allow all inbound traffic", -1,
          "Close unrestricted inbound rules immediately."),
         ("We do not use VPCs or security groups", -2,
          "Place workloads in private networks with explicit ingress rules."),
     ]),
    (10, CLOUD, "Access Management",
     "How do you enforce IAM policies based on least privilege?",
     "Over-privileged identities turn any single compromise into a full compromise.",
     [
         ("Granular, resource-specific roles reviewed regularly", 2,
          "Automate unused-permission detection and removal."),
         ("Groups with broad managed policies", 1,
          "Replace broad policies with scoped, task-specific roles."),
         ("Policies attached to users, rarely reviewed", 0,
          "Move permissions to roles and review them quarterly."),
         ("Most users are administrators", -1,
          "Remove administrator rights from everyone who does not need them."),
         ("The root account is used daily", -2,
          "Lock away the root account and use individual, least-privilege identities."),
     ]),
    (11, CLOUD, "Data Protection",
     "How is encryption managed for cloud storage services?",
     "Storage encryption protects data if access controls fail.",
     [
         ("Encrypted by default with customer-managed keys and rotation", 2,
          "Audit key policies and rotation logs regularly."),
         ("Encrypted by default with provider-managed keys", 1,
          "Consider customer-managed keys for regulated data."),
         ("Only known-sensitive buckets are encrypted", 0,
          "Turn on default encryption for every bucket and volume."),
         ("We rely on defaults that may not encrypt", -1,
          "Verify and enforce encryption settings across all storage."),
         ("We do not encrypt stored data", -2,
          "Enable encryption at rest for all storage services now."),
     ]),
    (12, GDPR, "Data Governance",
     "What is your documented lawful basis for processing personal data?",
     "Every processing activity needs a lawful basis recorded before it starts.",
     [
         ("Documented per activity and reflected in the privacy notice", 2,
          "Review lawful bases whenever processing purposes change."),
         ("We rely mainly on clear, affirmative consent", 1,
          "Document the lawful basis per activity; consent is not always the right one."),
         ("Documented for some activities only", 0,
          "Complete the lawful basis record for every processing activity."),
         ("We assume we may process what we collect", -1,
          "Map processing activities and assign a lawful basis to each."),
         ("We do not know what a lawful basis is", -2,
          "Seek data protection advice and document lawful bases before further processing."),
     ]),
    (13, GDPR, "Data Governance",
     "How are data retention periods defined and enforced?",
     "Keeping personal data longer than necessary breaches the storage limitation principle.",
     [
         ("Retention schedule with automated deletion", 2,
          "Audit deletion jobs and update the schedule as data types change."),
         ("Retention schedule with manual deletion", 1,
          "Automate deletion or anonymization against the schedule."),
         ("Data kept until a user asks for deletion", 0,
          "Define retention periods per data category."),
         ("We have never deleted personal data", -1,
          "Review stored data and delete what is no longer needed."),
         ("No retention policy", -2,
          "Create a retention policy covering every category of personal data."),
     ]),
    (14, GDPR, "Operational Compliance",
     "How do you facilitate data subject rights such as access and erasure?",
     "Requests must be answered within one month in most cases.",
     [
         ("Documented process with a dedicated contact point", 2,
          "Track response times and test the process periodically."),
         ("Handled ad hoc via email or support tickets", 1,
          "Document a process with owners and deadlines."),
         ("Unsure how to process requests", 0,
          "Train staff on recognizing and routing data subject requests."),
         ("We tell users we cannot help", -1,
          "Stop refusing requests and put a compliant process in place."),
         ("We ignore requests", -2,
          "Respond to outstanding requests and seek advice on remediation."),
     ]),
    (15, GDPR, "Operational Compliance",
     "What is your process for notifying the supervisory authority of a data breach?",
     "Notifiable breaches must be reported within 72 hours of discovery.",
     [
         ("Documented procedure meeting the 72-hour deadline", 2,
          "Rehearse the procedure with a tabletop exercise each year."),
         ("We would ask our legal advisor if it happened", 1,
          "Write down the assessment and notification steps in advance."),
         ("We would report only large breaches", 0,
          "Assess every breach against the notification threshold."),
         ("We believe we never need to report", -1,
          "Learn the notification obligations and document them."),
         ("No process", -2,
          "Create a breach response and notification procedure."),
     ]),
]


def _validate() -> None:
    names = {name for _, name, _, _ in QUESTIONNAIRES}
    declared = {name: set(cats) for _, name, _, cats in QUESTIONNAIRES}
    ids = [item[0] for item in QUESTION_ITEMS]
    if len(ids) != len(set(ids)):
        raise RuntimeError("Duplicate question ids in seed data")
    for qid, assessment, category, _text, _expl, options in QUESTION_ITEMS:
        if assessment not in names:
            raise RuntimeError(f"Question {qid} references unknown assessment {assessment!r}")
        if category not in declared[assessment]:
            raise RuntimeError(f"Question {qid} uses undeclared category {category!r}")
        scores = [score for _, score, _ in options]
        if any(s < -2 or s > 2 for s in scores):
            raise RuntimeError(f"Question {qid} has an option score outside -2..+2")
        if 2 not in scores:
            raise RuntimeError(f"Question {qid} has no best (+2) option")


def build_seed_questionnaires() -> List[Dict[str, Any]]:
    """Fresh, mutable copies of the seed questionnaires in catalog form."""
    out: List[Dict[str, Any]] = []
    for qn_id, name, last_updated, categories in QUESTIONNAIRES:
        questions = [
            {
                "id": qid,
                "assessment_name": assessment,
                "category": category,
                "text": text,
                "explanation": explanation,
                "options": [
                    {"text": o_text, "score": score, "explanation": "", "recommendation": rec}
                    for o_text, score, rec in options
                ],
            }
            for qid, assessment, category, text, explanation, options in QUESTION_ITEMS
            if assessment == name
        ]
        out.append({
            "id": qn_id,
            "name": name,
            "status": "Active",
            "last_updated": last_updated,
            "categories": list(categories),
            "questions": questions,
        })
    return out


_validate()
