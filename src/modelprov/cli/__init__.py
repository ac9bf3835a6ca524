#  Copyright © 2025 Emmi AI GmbH. All rights reserved.
